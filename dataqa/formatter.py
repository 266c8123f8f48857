"""
Response Formatter
==================

Renders merged results as a sentence plus the structured AnswerResult.

Single-file and multi-file scopes use different templates
("There are 3 rows in sales.csv." vs "There are 9 rows across 3 files.").
When only some files contributed, the sentence says "across 1 of 3 files".

Author: DataQA Team
"""

import logging
from typing import Dict, List, Optional, Sequence

from .merger import MergedResult
from .planner import SOFT_CLARIFY, SOFT_COMPARE
from .text import format_number, preview_list
from .types import AggregationItem, AnswerResult, FileProfile, IntentType, PlanKind

logger = logging.getLogger(__name__)

METRIC_LABELS = {"sum": "total", "avg": "average", "min": "minimum", "max": "maximum"}
GROUP_LABELS = {"sum": "Sum", "avg": "Average", "min": "Minimum", "max": "Maximum"}

COMPARE_APOLOGY = "I could not build a comparison from your data. Try: compare Revenue vs Cost by Country."
UNKNOWN_SINGLE = ("I could not match a column name. Try mentioning a column from your preview "
                  "(for example: \"top 5 values of Service\").")
UNKNOWN_MULTI = "I could not match a column across your files. Try mentioning a column name from Data Explorer."
UNSUPPORTED = "This file has no structured columns. Q&A works best with CSV or Excel files."
NO_TYPES = "I could not infer column types yet."

COMPARE_PREVIEW = 5


# =============================================================================
# HELPERS
# =============================================================================

def _scope_text(merged: MergedResult) -> str:
    if merged.matched_files < merged.total_files:
        return f"across {merged.matched_files} of {merged.total_files} files"
    return f"across {merged.matched_files} files"


def _count_text(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return format_number(value)


def _item_list(items: List[AggregationItem], numeric: bool = False) -> str:
    if not items:
        return "No values found."
    render = format_number if numeric else _count_text
    return ", ".join(f"{item.value} ({render(item.count)})" for item in items)


def soft_answer(intent: IntentType, message: str) -> AnswerResult:
    logger.info(f"[QA] Soft answer ({intent.value}): {message}")
    return AnswerResult(answer=message, intent=intent.value)


def unknown_answer(multi_file: bool) -> AnswerResult:
    return soft_answer(IntentType.UNKNOWN, UNKNOWN_MULTI if multi_file else UNKNOWN_SINGLE)


def unsupported_answer() -> AnswerResult:
    return soft_answer(IntentType.UNSUPPORTED, UNSUPPORTED)


# =============================================================================
# EXECUTED INTENTS
# =============================================================================

def format_result(merged: MergedResult, file_name: str) -> AnswerResult:
    """
    Sentence and payload for an executed (or soft) question.

    Args:
        merged: Output of ResultMerger.merge
        file_name: Name of the file for single-file templates

    Returns:
        AnswerResult
    """
    multi = merged.is_multi_file

    if merged.soft == SOFT_COMPARE:
        return soft_answer(IntentType.COMPARE, COMPARE_APOLOGY)
    if merged.soft == SOFT_CLARIFY and not multi:
        return soft_answer(IntentType.GROUP,
                           f"Please specify a numeric column to aggregate by \"{merged.group_by}\".")

    kind = merged.kind
    if merged.matched_files == 0:
        if kind == PlanKind.COMPARE:
            return soft_answer(IntentType.COMPARE, COMPARE_APOLOGY)
        if multi or kind is None:
            return unknown_answer(multi)
        if kind == PlanKind.NUMERIC:
            logger.info(f"[QA] No numeric values in '{merged.column}'")
            return AnswerResult(answer=f"No numeric values found in \"{merged.column}\".",
                                intent=merged.intent.value, column=merged.column, value=0)
        if kind == PlanKind.GROUP_METRIC:
            return soft_answer(IntentType.GROUP, f"No numeric values found in \"{merged.column}\".")

    answer = _render(merged, file_name)
    answer.matched_files = merged.matched_files
    answer.strategy = merged.strategy
    return answer


def _render(merged: MergedResult, file_name: str) -> AnswerResult:
    multi = merged.is_multi_file
    kind = merged.kind
    column = merged.column

    if kind == PlanKind.ROWS:
        value = int(merged.value or 0)
        text = (f"There are {value} rows across {merged.total_files} files." if multi
                else f"There are {value} rows in {file_name}.")
        return AnswerResult(answer=text, intent=IntentType.ROWS.value, value=value)

    if kind == PlanKind.COUNT:
        value = int(merged.value or 0)
        filter_value = merged.filter.value if merged.filter else None
        target = f"\"{filter_value}\"" if filter_value else f"non-empty \"{column}\""
        text = f"There are {value} rows with {target}"
        text += f" {_scope_text(merged)}." if multi else "."
        return AnswerResult(answer=text, intent=IntentType.COUNT.value, column=column, value=value,
                            filter={"value": filter_value} if filter_value else None,
                            include_filter=True)

    if kind == PlanKind.DISTINCT:
        value = int(merged.value or 0)
        text = f"\"{column}\" has {value} distinct values"
        text += f" {_scope_text(merged)}." if multi else "."
        return AnswerResult(answer=text, intent=IntentType.DISTINCT.value, column=column, value=value)

    if kind == PlanKind.TOP:
        listing = _item_list(merged.items)
        text = (f"{_scope_text(merged).capitalize()}, top values of \"{column}\": {listing}" if multi
                else f"Top {len(merged.items)} values of \"{column}\": {listing}")
        return AnswerResult(answer=text, intent=IntentType.TOP.value, column=column, items=merged.items)

    if kind == PlanKind.NUMERIC:
        value = merged.value if merged.value is not None else 0
        label = METRIC_LABELS[merged.metric]
        scope = f" {_scope_text(merged)}" if multi else ""
        text = f"The {label} of \"{column}\"{scope} is {format_number(value)}."
        return AnswerResult(answer=text, intent=merged.intent.value, column=column, value=value)

    if kind == PlanKind.GROUP_COUNT:
        scope = f" {_scope_text(merged)}" if multi else ""
        text = f"Count by \"{merged.group_by}\"{scope}: {_item_list(merged.items)}"
        return AnswerResult(answer=text, intent=IntentType.GROUP.value, group_by=merged.group_by,
                            items=merged.items)

    if kind == PlanKind.GROUP_METRIC:
        label = GROUP_LABELS[merged.metric]
        scope = f" {_scope_text(merged)}" if multi else ""
        text = (f"{label} of \"{column}\" by \"{merged.group_by}\"{scope}: "
                f"{_item_list(merged.items, numeric=True)}")
        return AnswerResult(answer=text, intent=IntentType.GROUP.value, column=column,
                            group_by=merged.group_by, items=merged.items)

    if kind == PlanKind.COMPARE:
        preview = ", ".join(
            f"{item.value} ({format_number(item.count)} vs {format_number(item.compare or 0)})"
            for item in merged.items[:COMPARE_PREVIEW]
        )
        scope = _scope_text(merged) if multi else f"in {file_name}"
        text = (f"Comparison of \"{column}\" vs \"{merged.compare_column}\" "
                f"by \"{merged.group_by}\" {scope}: {preview}")
        return AnswerResult(answer=text, intent=IntentType.COMPARE.value, column=column,
                            compare_column=merged.compare_column, group_by=merged.group_by,
                            items=merged.items)

    return unknown_answer(multi)


# =============================================================================
# METADATA INTENTS
# =============================================================================

def format_columns(columns: List[str], total_files: int) -> AnswerResult:
    listing = preview_list(columns)
    suffix = f": {listing}" if listing else ""
    if total_files > 1:
        text = f"Across {total_files} files, there are {len(columns)} unique columns{suffix}."
    else:
        text = f"This file has {len(columns)} columns{suffix}."
    return AnswerResult(answer=text, intent=IntentType.COLUMNS.value, columns=columns)


def format_profile_summary(profile: FileProfile, name: str) -> str:
    parts = [
        f"{name} has {profile.row_count} rows and {profile.column_count} columns.",
        f"I detected {len(profile.numeric_columns)} numeric, {len(profile.date_columns)} date, "
        f"and {len(profile.categorical_columns)} categorical columns.",
    ]
    if profile.numeric_columns:
        parts.append(f"Numeric examples: {', '.join(profile.numeric_columns[:4])}.")
    if profile.date_columns:
        parts.append(f"Date examples: {', '.join(profile.date_columns[:3])}.")
    return " ".join(parts)


def format_types_text(numeric: Sequence[str], dates: Sequence[str], categorical: Sequence[str]) -> str:
    groups = [("Numeric", numeric), ("Date", dates), ("Categorical/String", categorical)]
    lines = [f"{label}: {preview_list(list(cols))}" for label, cols in groups if cols]
    return ". ".join(lines) if lines else NO_TYPES


def types_payload(profile: FileProfile) -> Dict[str, List[str]]:
    return {
        "numeric": profile.numeric_columns,
        "dates": profile.date_columns,
        "categorical": profile.categorical_columns,
    }


def merge_profiles(profiles: Sequence[FileProfile]) -> FileProfile:
    """Project-level overview: summed counts, per-type unions in file order."""
    merged = FileProfile(row_count=0, column_count=0)
    for profile in profiles:
        merged.row_count += profile.row_count
        merged.column_count += profile.column_count
        for source, target in (
            (profile.numeric_columns, merged.numeric_columns),
            (profile.date_columns, merged.date_columns),
            (profile.categorical_columns, merged.categorical_columns),
            (profile.high_cardinality_columns, merged.high_cardinality_columns),
        ):
            target.extend(c for c in source if c not in target)
    return merged


def format_summary(profile: Optional[FileProfile], name: str, row_count: int,
                   column_count: int, total_files: int = 1) -> AnswerResult:
    """Profile-based summary, or plain row/column counts without a profile."""
    if profile is None:
        return AnswerResult(answer=f"{name} has {row_count} rows and {column_count} columns.",
                            intent=IntentType.SUMMARY.value,
                            value={"rows": row_count, "columns": column_count})

    if total_files > 1:
        text = format_profile_summary(profile, f"Across {total_files} files, your data")
        payload = {
            "rowCount": profile.row_count,
            "columnCount": profile.column_count,
            "overview": profile.to_dict()["overview"],
        }
        return AnswerResult(answer=text, intent=IntentType.SUMMARY.value, profile=payload)

    return AnswerResult(answer=format_profile_summary(profile, name), intent=IntentType.SUMMARY.value,
                        profile=profile.to_dict())


def format_types(numeric: Sequence[str], dates: Sequence[str], categorical: Sequence[str],
                 profile: Optional[FileProfile] = None) -> AnswerResult:
    return AnswerResult(answer=format_types_text(numeric, dates, categorical),
                        intent=IntentType.TYPES.value,
                        profile=types_payload(profile) if profile is not None else None)
