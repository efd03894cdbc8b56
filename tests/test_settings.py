from __future__ import annotations

from sentiscope.settings import load_settings


def test_defaults():
    s = load_settings()
    policy = s.label_policy()

    assert s.batch_size == 10
    assert s.batch_delay_sec == 1.0
    assert s.rate_limit_retries == 0
    assert policy.mode == "cutoff"
    assert policy.cutoff == 0.7


def test_env_overrides_policy(monkeypatch):
    monkeypatch.setenv("LABEL_POLICY_MODE", "three_class")
    monkeypatch.setenv("LABEL_ALIASES", '{"LABEL_0": "Negative", "label_2": "positive"}')
    monkeypatch.setenv("BATCH_SIZE", "5")

    s = load_settings()
    policy = s.label_policy()

    assert s.batch_size == 5
    assert policy.mode == "three_class"
    assert policy.aliases == {"label_0": "negative", "label_2": "positive"}
