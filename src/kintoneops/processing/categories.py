"""Rule-based app categorization."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from kintoneops import logger
from kintoneops.typing.models import CategoryInfo

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from kintoneops.typing.models import Registry

FALLBACK_CATEGORY = "other"

DEFAULT_CATEGORIES: dict[str, CategoryInfo] = {
    "master": CategoryInfo(name="マスタデータ", description="マスタデータ管理アプリケーション"),
    "business": CategoryInfo(name="業務管理", description="業務プロセス管理アプリケーション"),
    "finance": CategoryInfo(name="財務・経理", description="財務・経理関連アプリケーション"),
    "report": CategoryInfo(name="レポート・分析", description="集計・分析・レポート機能"),
    "admin": CategoryInfo(name="システム管理", description="システム管理・設定アプリケーション"),
    "other": CategoryInfo(name="その他", description="その他のアプリケーション"),
}


@dataclass(frozen=True)
class CategoryRule:
    """Assign `category` to app names accepted by `predicate`."""

    category: str
    predicate: Callable[[str], bool]

    def matches(self, app_name: str) -> bool:
        """Return whether the rule applies to the app name."""
        return self.predicate(app_name)


def keyword_rule(category: str, *keywords: str) -> CategoryRule:
    """Build a rule matching app names containing any keyword."""
    return CategoryRule(category=category, predicate=lambda name: any(keyword in name for keyword in keywords))


DEFAULT_KEYWORD_RULES: tuple[CategoryRule, ...] = (
    keyword_rule("master", "マスタ"),
    keyword_rule("admin", "管理", "登録", "設定"),
    keyword_rule("report", "一覧", "集計", "レポート", "分析"),
    keyword_rule("finance", "請求", "支払", "経理", "財務", "会計"),
    keyword_rule("business", "業務", "作業", "タスク", "プロジェクト", "案件"),
    keyword_rule("workflow", "ワークフロー", "承認", "申請"),
    keyword_rule("sample", "サンプル", "テンプレート", "テスト"),
)


class AppClassifier:
    """Ordered rules, first match wins, with a catch-all category."""

    def __init__(self, rules: Sequence[CategoryRule], default: str = FALLBACK_CATEGORY) -> None:
        self.rules = tuple(rules)
        self.default = default

    def classify(self, app_name: str) -> str:
        """Return the category key of an app display name."""
        for rule in self.rules:
            if rule.matches(app_name):
                return rule.category
        return self.default


def registry_rules(registry: Registry | None) -> list[CategoryRule]:
    """Build exact-name rules from registry apps declaring a category.

    An app matches by its registry key or its display name.
    """
    if registry is None:
        return []
    rules: list[CategoryRule] = []
    for key, app in registry.apps.items():
        if not app.category:
            continue
        names = frozenset((key, app.name))
        rules.append(CategoryRule(category=app.category, predicate=names.__contains__))
    return rules


def build_classifier(registry: Registry | None = None) -> AppClassifier:
    """Return the registry rules followed by the keyword heuristics."""
    return AppClassifier([*registry_rules(registry), *DEFAULT_KEYWORD_RULES])


def resolve_categories(registry: Registry | None) -> dict[str, CategoryInfo]:
    """Return registry categories, or the default table when none are declared."""
    if registry is not None and registry.categories:
        logger.info("Loaded categories from registry", extra={"category_count": len(registry.categories)})
        return dict(registry.categories)
    logger.warning("No categories found in registry, using default categories")
    return dict(DEFAULT_CATEGORIES)


def category_display_name(category: str, categories: Mapping[str, CategoryInfo]) -> str:
    """Return the display name of a category key, falling back to the key."""
    info = categories.get(category)
    return info.name if info else category
