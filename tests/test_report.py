from __future__ import annotations

import json

from sentiscope.report import classify_domain, summarize, top_words
from sentiscope.sentiment_types import SentimentResult


def _r(comment: str, sentiment: str) -> SentimentResult:
    return SentimentResult(comment=comment, sentiment=sentiment)  # type: ignore[arg-type]


def test_summarize_counts_percentages_and_dominant():
    results = [
        _r("Great product quality", "positive"),
        _r("Support never answered", "negative"),
        _r("Love the design", "positive"),
        _r("Arrived on monday", "neutral"),
    ]

    report = summarize(results)

    assert report.total == 4
    assert report.counts == {"positive": 2, "negative": 1, "neutral": 1}
    assert report.percentages == {"positive": 50.0, "negative": 25.0, "neutral": 25.0}
    assert report.dominant_sentiment == "positive"
    assert report.longest_comment == "Support never answered"
    assert report.avg_comment_length == round(sum(len(r.comment) for r in results) / 4)


def test_domain_breakdown_and_most_discussed():
    results = [
        _r("Great product", "positive"),
        _r("Bad product design", "negative"),
        _r("Too expensive", "negative"),
        _r("hello", "neutral"),
    ]

    report = summarize(results)
    domains = {d.domain: d for d in report.domains}

    assert domains["Product"].positive == 1
    assert domains["Product"].negative == 1
    assert domains["Pricing"].negative == 1
    assert domains["General"].neutral == 1
    assert report.most_discussed_domain == "Product"


def test_classify_domain_first_match_wins():
    assert classify_domain("The service price was fair") == "Service"
    assert classify_domain("Shipping was slow") == "Delivery"
    assert classify_domain("ok") == "General"


def test_top_words_filters_short_words_and_orders_by_frequency():
    words = top_words(["Love love this phone", "the phone is great", "love it"])
    assert [(w.text, w.value) for w in words] == [("love", 3), ("phone", 2), ("this", 1), ("great", 1)]


def test_dominant_tie_prefers_positive_then_negative():
    report = summarize([_r("a", "negative"), _r("b", "positive")])
    assert report.dominant_sentiment == "positive"


def test_empty_results():
    report = summarize([])

    assert report.total == 0
    assert report.percentages == {"positive": 0.0, "negative": 0.0, "neutral": 0.0}
    assert report.dominant_sentiment == "neutral"
    assert report.most_discussed_domain is None
    assert report.longest_comment is None


def test_payload_is_json_serializable():
    payload = summarize([_r("Great product", "positive")]).to_payload()

    text = json.dumps(payload)
    assert '"dominant_sentiment": "positive"' in text
    assert payload["domains"][0]["total"] == 1
    assert payload["results"] == [{"comment": "Great product", "sentiment": "positive"}]
