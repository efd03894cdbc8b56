from __future__ import annotations

import json
import logging
import sys

from sentiscope.comment_loader import load_comments
from sentiscope.errors import SentimentError
from sentiscope.gateway_client import ChatGatewayClient, GatewayConfig
from sentiscope.http_client import HttpClient, HttpConfig
from sentiscope.local_analyzer import analyze_local
from sentiscope.remote_analyzer import RemoteAnalyzerConfig, RemoteBatchAnalyzer
from sentiscope.report import summarize
from sentiscope.sentiment_model import LocalSentimentModel, SentimentModelConfig
from sentiscope.sentiment_types import AnalysisProgress, SentimentResult
from sentiscope.settings import AnalysisSettings, load_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _log_progress(event: AnalysisProgress) -> None:
    logger.info("Progress: %s/%s %s", event.current, event.total, event.result.sentiment)


def _run_local(s: AnalysisSettings, comments: list[str]) -> list[SentimentResult]:
    model = LocalSentimentModel(
        SentimentModelConfig(
            model_path=s.sentiment_model_path,
            max_length=s.sentiment_max_length,
            device=s.sentiment_device,
        )
    )
    return analyze_local(
        comments,
        classify=model.classify,
        policy=s.label_policy(),
        on_progress=_log_progress,
        isolate_errors=s.isolate_item_errors,
    )


def _run_cloud(s: AnalysisSettings, comments: list[str]) -> list[SentimentResult]:
    http = HttpClient(
        HttpConfig(
            timeout_sec=s.request_timeout_sec,
            rate_limit_retries=s.rate_limit_retries,
            backoff_base_sec=s.backoff_base_sec,
            backoff_max_sec=s.backoff_max_sec,
        )
    )
    client = ChatGatewayClient(
        GatewayConfig(url=s.ai_gateway_url, model=s.ai_gateway_model, api_key=s.ai_gateway_api_key),
        http=http,
    )
    analyzer = RemoteBatchAnalyzer(
        client,
        RemoteAnalyzerConfig(batch_size=s.batch_size, batch_delay_sec=s.batch_delay_sec),
    )
    results: list[SentimentResult] = []
    for event in analyzer.iter_analysis(comments):
        _log_progress(event)
        results.append(event.result)
    return results


def main(argv: list[str] | None = None) -> int:
    s = load_settings()
    args = sys.argv[1:] if argv is None else argv
    path = args[0] if args else s.comments_path

    try:
        comments = load_comments(path)
        if not comments:
            logger.warning("No comments found in %s", path)
            print("{}")
            return 0

        logger.info("Analyzing %s comments: mode=%s", len(comments), s.analysis_mode)
        if s.analysis_mode == "cloud":
            results = _run_cloud(s, comments)
        elif s.analysis_mode == "local":
            results = _run_local(s, comments)
        else:
            raise ValueError(f"Unknown ANALYSIS_MODE: {s.analysis_mode}")
    except (SentimentError, ValueError, OSError) as e:
        logger.error("Analysis failed: %s", e)
        print(json.dumps({"error": str(e)}, ensure_ascii=False))
        return 1

    report = summarize(results)
    print(json.dumps(report.to_payload(), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
