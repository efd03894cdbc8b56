from __future__ import annotations

import logging
from typing import Callable, Iterator, Optional, Sequence

from sentiscope.errors import LocalAnalysisError
from sentiscope.label_policy import LabelPolicy, map_label
from sentiscope.sentiment_types import AnalysisProgress, RawClassification, SentimentResult

logger = logging.getLogger(__name__)

Classify = Callable[[str], RawClassification]
ProgressHook = Callable[[AnalysisProgress], None]


def iter_local_analysis(
        comments: Sequence[str],
        classify: Classify,
        policy: LabelPolicy,
        isolate_errors: bool = False,
) -> Iterator[AnalysisProgress]:
    """
    Classify comments one by one, yielding a progress event after each.

    - Strictly sequential; the next item is classified only when the caller
      pulls the next event
    - Keeps ordering
    - Does not filter blank comments (done by the caller)

    Raises:
        LocalAnalysisError: classifier failed and isolate_errors is False.
            Carries the results produced so far.
    """
    total = len(comments)
    done: list[SentimentResult] = []

    for i, comment in enumerate(comments):
        try:
            raw = classify(comment)
            sentiment = map_label(raw, policy)
        except Exception as e:
            if not isolate_errors:
                logger.error("Local classification failed: index=%s err=%s", i, e)
                err = LocalAnalysisError(f"Local classification failed at item {i + 1}: {e}", index=i)
                err.attach_partial(done)
                raise err from e
            logger.warning("Local classification failed, using neutral: index=%s err=%s", i, e)
            sentiment = "neutral"

        result = SentimentResult(comment=comment, sentiment=sentiment)
        done.append(result)
        yield AnalysisProgress(current=i + 1, total=total, result=result)


def analyze_local(
        comments: Sequence[str],
        classify: Classify,
        policy: LabelPolicy,
        on_progress: Optional[ProgressHook] = None,
        isolate_errors: bool = False,
) -> list[SentimentResult]:
    """Run iter_local_analysis to completion and return results in input order."""
    results: list[SentimentResult] = []
    for event in iter_local_analysis(comments, classify, policy, isolate_errors=isolate_errors):
        results.append(event.result)
        if on_progress is not None:
            on_progress(event)

    logger.info("Local analysis complete: results=%s", len(results))
    return results
