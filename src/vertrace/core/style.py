"""Presentational attributes per change category."""

from __future__ import annotations

from dataclasses import dataclass

from vertrace.core.categories import ChangeCategory


@dataclass(frozen=True)
class CategoryStyle:
    """Colors and stroke pattern used to draw a node and its incoming edge."""

    fill_color: str
    border_color: str
    text_color: str
    stroke_style: str = "solid"

    def to_dict(self) -> dict:
        return {
            "fill_color": self.fill_color,
            "border_color": self.border_color,
            "text_color": self.text_color,
            "stroke_style": self.stroke_style,
        }


NEUTRAL_STYLE = CategoryStyle("#f8fafc", "#94a3b8", "#475569")

_STYLES: dict[ChangeCategory, CategoryStyle] = {
    ChangeCategory.ADDED: CategoryStyle("#dcfce7", "#16a34a", "#166534"),
    ChangeCategory.MODIFIED: CategoryStyle("#fef3c7", "#d97706", "#92400e"),
    ChangeCategory.DEPRECATED: CategoryStyle("#fed7d7", "#e53e3e", "#c53030", "dashed"),
    ChangeCategory.REMOVED: CategoryStyle("#f3f4f6", "#6b7280", "#374151", "long-dash"),
    ChangeCategory.BUG_FIX: CategoryStyle("#ddd6fe", "#7c3aed", "#5b21b6"),
    ChangeCategory.SECURITY_FIX: CategoryStyle("#fee2e2", "#dc2626", "#991b1b"),
    ChangeCategory.TEST_FIX: CategoryStyle("#f0f9ff", "#0284c7", "#0c4a6e"),
    ChangeCategory.COMPATIBILITY: CategoryStyle("#f0fdf4", "#22c55e", "#14532d"),
    ChangeCategory.SECURITY_ENHANCEMENT: CategoryStyle("#fef7ff", "#c026d3", "#86198f"),
    ChangeCategory.BASE: CategoryStyle("#f8fafc", "#cbd5e1", "#64748b", "dotted"),
}

# SVG stroke-dasharray values for each stroke style.
_DASH_ARRAYS = {
    "solid": "",
    "dashed": "5,5",
    "long-dash": "10,5",
    "dotted": "2,4",
}


def style_for(category: ChangeCategory | str | None) -> CategoryStyle:
    """Return the style for a category; unknown categories get NEUTRAL_STYLE."""
    if not isinstance(category, ChangeCategory):
        category = ChangeCategory.from_label(category)
    if category is None:
        return NEUTRAL_STYLE
    return _STYLES.get(category, NEUTRAL_STYLE)


def dash_array(stroke_style: str) -> str:
    """SVG dash pattern for a stroke style ("" means a solid line)."""
    return _DASH_ARRAYS.get(stroke_style, "")
