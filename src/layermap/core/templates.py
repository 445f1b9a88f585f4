"""Default node sets shipped with each template."""

from typing import Any

from layermap.core.tree.operations import build_nodes
from layermap.models.node import Node, Template


def _task(title: str, assignee: str, start: str, end: str, status: str, progress: int,
          children: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    notes = (
        f"担当者名: {assignee}\n開始日: {start}\n終了日: {end}\n"
        f"ステータス: {status}\n進捗率: {progress}%"
    )
    return {"title": title, "notes": notes, "children": children or []}


_WBS: list[dict[str, Any]] = [
    _task("プロジェクト計画", "プロジェクトマネージャー", "2024-01-01", "2024-01-15", "完了", 100, [
        _task("要件定義", "ビジネスアナリスト", "2024-01-01", "2024-01-10", "完了", 100, [
            _task("ステークホルダーインタビュー", "ビジネスアナリスト",
                  "2024-01-01", "2024-01-05", "完了", 100),
            _task("要件文書作成", "ビジネスアナリスト", "2024-01-06", "2024-01-10", "完了", 100),
        ]),
        _task("プロジェクト計画書作成", "プロジェクトマネージャー",
              "2024-01-11", "2024-01-15", "完了", 100),
    ]),
    _task("システム設計", "システムアーキテクト", "2024-01-16", "2024-02-15", "進行中", 60, [
        _task("基本設計", "システムアーキテクト", "2024-01-16", "2024-01-31", "完了", 100, [
            _task("システム構成設計", "システムアーキテクト",
                  "2024-01-16", "2024-01-25", "完了", 100),
            _task("データベース設計", "データベースエンジニア",
                  "2024-01-26", "2024-01-31", "完了", 100),
        ]),
        _task("詳細設計", "システムアーキテクト", "2024-02-01", "2024-02-15", "進行中", 60, [
            _task("画面設計", "UI/UXデザイナー", "2024-02-01", "2024-02-10", "進行中", 70),
            _task("API設計", "バックエンドエンジニア", "2024-02-05", "2024-02-15", "進行中", 50),
        ]),
    ]),
    _task("開発", "開発チーム", "2024-02-16", "2024-04-15", "未開始", 0, [
        _task("フロントエンド開発", "フロントエンドエンジニア",
              "2024-02-16", "2024-03-31", "未開始", 0, [
            _task("ユーザー認証機能", "フロントエンドエンジニア",
                  "2024-02-16", "2024-02-28", "未開始", 0),
            _task("ダッシュボード機能", "フロントエンドエンジニア",
                  "2024-03-01", "2024-03-15", "未開始", 0),
            _task("レポート機能", "フロントエンドエンジニア",
                  "2024-03-16", "2024-03-31", "未開始", 0),
        ]),
        _task("バックエンド開発", "バックエンドエンジニア",
              "2024-02-16", "2024-04-15", "未開始", 0, [
            _task("API実装", "バックエンドエンジニア", "2024-02-16", "2024-03-31", "未開始", 0),
            _task("データベース実装", "データベースエンジニア",
                  "2024-03-01", "2024-04-15", "未開始", 0),
        ]),
    ]),
    _task("テスト", "QAチーム", "2024-04-16", "2024-05-15", "未開始", 0, [
        _task("単体テスト", "開発チーム", "2024-04-16", "2024-04-30", "未開始", 0),
        _task("結合テスト", "QAチーム", "2024-05-01", "2024-05-10", "未開始", 0),
        _task("システムテスト", "QAチーム", "2024-05-11", "2024-05-15", "未開始", 0),
    ]),
    _task("リリース", "プロジェクトマネージャー", "2024-05-16", "2024-05-31", "未開始", 0, [
        _task("本番環境構築", "インフラエンジニア", "2024-05-16", "2024-05-20", "未開始", 0),
        _task("本番リリース", "プロジェクトマネージャー", "2024-05-21", "2024-05-25", "未開始", 0),
        _task("運用開始", "運用チーム", "2024-05-26", "2024-05-31", "未開始", 0),
    ]),
]

DEFAULT_NODES: dict[Template, list[dict[str, Any]]] = {
    Template.SITEMAP: [
        {"title": "トップページ"},
        {"title": "サービス"},
        {"title": "料金"},
        {"title": "お問い合わせ"},
    ],
    Template.WBS: _WBS,
    Template.CONTENT_CALENDAR: [
        {"title": "Week1"},
        {"title": "Week2"},
        {"title": "Week3"},
        {"title": "Week4"},
    ],
    Template.CUSTOM: [],
}


def default_nodes(template: Template) -> tuple[Node, ...]:
    """Build a fresh copy of the template's starter tree with new ids."""
    return build_nodes(DEFAULT_NODES[template], template)
