"""
DataQA Service
==============

Single entry point: ask(question, scope) -> AnswerResult.

Flow:
    question -> classify intent -> build FileContexts for the scope
             -> metadata intents (columns / summary / types) answered directly
             -> otherwise plan each file, execute (push-down, in-memory on
                failure), merge, format

If anything in the push-down pipeline raises outside a single plan (e.g. the
store fails while loading a profile), the whole question is recomputed from
materialized rows. Only when that also fails does the caller see an error.

Author: DataQA Team
"""

import logging
from typing import Any, Dict, List, Optional, Union

from .columns import ColumnResolver
from .config import QAConfig
from .engines import ExecutionDispatcher, InMemoryExecutor, PushdownExecutor
from .errors import AnswerFailedError, QuestionValidationError, ScopeNotFoundError
from .formatter import (
    format_columns,
    format_result,
    format_summary,
    format_types,
    merge_profiles,
    unsupported_answer,
)
from .intent import IntentClassifier
from .merger import ResultMerger
from .planner import QueryPlanner
from .store import DataSource
from .types import AnswerResult, FileContext, FileInfo, Intent, IntentType, Scope

logger = logging.getLogger(__name__)

METADATA_INTENTS = frozenset({IntentType.COLUMNS, IntentType.SUMMARY, IntentType.TYPES})


class DataQAService:
    """
    Natural-language Q&A over the files of a DataSource.

    Usage:
        service = DataQAService(store, QAConfig.from_env())
        result = service.ask("top 5 values of Service", Scope(file_id=3))
        print(result.answer)
    """

    def __init__(self, source: DataSource, config: Optional[QAConfig] = None):
        self.source = source
        self.config = config or QAConfig()
        self.classifier = IntentClassifier(default_top_n=self.config.default_top_n,
                                           max_top_n=self.config.max_top_n)
        self.resolver = ColumnResolver(self.config)
        self.planner = QueryPlanner(self.config, self.resolver)
        self.merger = ResultMerger()

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    def ask(self,
            question: str,
            scope: Union[Scope, Dict[str, Any]],
            force_intent: Optional[Union[IntentType, str]] = None) -> AnswerResult:
        """
        Answer a question about one file or every file in a project.

        Args:
            question: Free text
            scope: Scope or {"fileId": ...} / {"projectId": ...}
            force_intent: Skip classification and use this intent

        Returns:
            AnswerResult (soft answers included)

        Raises:
            QuestionValidationError: empty question or scope
            ScopeNotFoundError: unknown file / project without files
            AnswerFailedError: both strategies failed
        """
        scope = scope if isinstance(scope, Scope) else Scope.from_dict(scope)
        question = (question or "").strip()
        if not question:
            raise QuestionValidationError("question is required")
        if scope.file_id is None and scope.project_id is None:
            raise QuestionValidationError("fileId or projectId is required")

        forced = IntentType(force_intent) if force_intent is not None else None
        intent = self.classifier.classify(question, forced)
        files = self._resolve_files(scope)
        logger.info(f"[QA] '{question[:80]}' -> {intent.type.value} (top_n={intent.top_n}) "
                    f"over {len(files)} file(s)")

        try:
            return self._answer(question, intent, files, use_pushdown=True)
        except Exception as e:
            logger.error(f"[FALLBACK] Push-down pipeline failed, recomputing from rows: {e}",
                         exc_info=True)
            try:
                return self._answer(question, intent, files, use_pushdown=False)
            except Exception as fallback_error:
                logger.error(f"[QA] Fallback pipeline failed: {fallback_error}", exc_info=True)
                raise AnswerFailedError(
                    "Q&A request failed. Please verify file columns/data format and try again."
                ) from fallback_error

    def _resolve_files(self, scope: Scope) -> List[FileInfo]:
        if not scope.is_project:
            info = self.source.get_file(scope.file_id)
            if info is None:
                raise ScopeNotFoundError(f"File {scope.file_id} not found")
            return [info]

        files = self.source.list_files_in_project(scope.project_id)
        if not files:
            raise ScopeNotFoundError(f"No files found for project {scope.project_id}")
        return files

    # =========================================================================
    # PIPELINE
    # =========================================================================

    def _answer(self, question: str, intent: Intent, files: List[FileInfo],
                use_pushdown: bool) -> AnswerResult:
        in_memory = InMemoryExecutor(self.source, self.config)
        pushdown = None
        if use_pushdown and self.source.conn is not None:
            pushdown = PushdownExecutor(self.source.conn, self.source.lock)
        dispatcher = ExecutionDispatcher(pushdown, in_memory)

        contexts = [self._build_context(info, in_memory, use_pushdown) for info in files]
        multi_file = len(contexts) > 1

        if not multi_file and not contexts[0].columns:
            return unsupported_answer()

        if intent.type in METADATA_INTENTS:
            return self._answer_metadata(intent, contexts)

        outcomes = []
        for context in contexts:
            if not context.columns:
                logger.info(f"[QA] Skipping file {context.file_id}: no columns")
                continue
            planned = self.planner.plan(question, intent, context, multi_file=multi_file)
            result = dispatcher.execute(planned.plan, context) if planned.plan else None
            outcomes.append((context, planned, result))

        kind = next((p.plan.kind for _, p, _ in outcomes if p.plan), None)
        limit = self.planner.list_limit(question, intent, kind)
        merged = self.merger.merge(intent.type, outcomes, limit=limit)
        merged.total_files = len(contexts)

        answer = format_result(merged, contexts[0].name)
        logger.info(f"[QA] Answered {answer.intent} via {answer.strategy.value if answer.strategy else 'n/a'}")
        return answer

    def _build_context(self, info: FileInfo, in_memory: InMemoryExecutor,
                       use_pushdown: bool) -> FileContext:
        """
        Context for one file.

        Push-down contexts carry a small row sample for type and value
        inference; fallback contexts share the executor's materialized rows.
        """
        columns = self.source.list_columns(info.id)
        profile = self.source.get_or_build_file_profile(info.id) if columns else None

        if use_pushdown:
            sample_size = max(self.config.type_inference_rows, self.config.value_scan_rows)
            loader = lambda: self.source.list_rows(info.id, sample_size)
        else:
            loader = lambda: in_memory.rows_for(info.id)

        return FileContext(file_id=info.id, name=info.name, columns=columns,
                           profile=profile, row_loader=loader)

    def _answer_metadata(self, intent: Intent, contexts: List[FileContext]) -> AnswerResult:
        total_files = len(contexts)

        if intent.type == IntentType.COLUMNS:
            seen: Dict[str, None] = {}
            for context in contexts:
                for column in context.columns:
                    seen.setdefault(column, None)
            return format_columns(list(seen), total_files)

        profiles = [c.profile for c in contexts if c.profile is not None]
        single = contexts[0] if total_files == 1 else None

        if intent.type == IntentType.SUMMARY:
            if single is not None:
                return format_summary(single.profile, single.name,
                                      self.source.count_rows(single.file_id), len(single.columns))
            merged = merge_profiles(profiles)
            return format_summary(merged, "", merged.row_count, merged.column_count, total_files)

        if single is not None and single.profile is None:
            numeric, categorical = self.resolver.infer_column_types(single.columns, single.rows)
            return format_types(numeric, [], categorical)

        profile = single.profile if single is not None else merge_profiles(profiles)
        return format_types(profile.numeric_columns, profile.date_columns,
                            profile.categorical_columns, profile)


def ask(question: str,
        scope: Union[Scope, Dict[str, Any]],
        source: DataSource,
        config: Optional[QAConfig] = None,
        force_intent: Optional[Union[IntentType, str]] = None) -> AnswerResult:
    """Convenience wrapper: one-off DataQAService(source, config).ask(...)."""
    return DataQAService(source, config).ask(question, scope, force_intent=force_intent)
