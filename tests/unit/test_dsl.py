"""Tests for the retry policy DSL parser."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from retryable.core.models import BackOffPolicy, JitterStrategy
from retryable.dsl import PolicyParser

YAML_DOCUMENT = """
policies:
  - name: http
    max_attempts: 3
    backoff_policy: exponential
    backoff: 500
    exponential:
      max_interval: 4000
      multiplier: 3
      jitter: full
    retryable_errors:
      - TimeoutError
      - ConnectionError
      - throttled
    retry_if: is_transient

  - name: db
    max_attempts: 2
    backoff: 250
    use_original_error: true
    log_on_exhaustion: false
"""


class GatewayError(Exception):
    pass


@pytest.fixture()
def parser() -> PolicyParser:
    p = PolicyParser()
    p.register_predicate("is_transient", lambda e: "503" in str(e))
    return p


class TestPolicyParser:
    def test_parse_yaml(self, parser: PolicyParser) -> None:
        policies = parser.parse_yaml(YAML_DOCUMENT)

        assert set(policies) == {"http", "db"}
        http = policies["http"]
        assert http.max_attempts == 3
        assert http.backoff_policy is BackOffPolicy.EXPONENTIAL
        assert http.backoff == 500
        assert http.jitter is JitterStrategy.FULL_JITTER
        assert http.retryable_errors == frozenset({TimeoutError, ConnectionError, "throttled"})
        assert http.retry_predicate is not None
        assert http.retry_predicate(RuntimeError("HTTP 503"))

        db = policies["db"]
        assert db.backoff_policy is BackOffPolicy.FIXED
        assert db.use_original_error is True
        assert db.log_on_exhaustion is False

    def test_parse_json(self, parser: PolicyParser) -> None:
        document = {"policies": [{"name": "quick", "max_attempts": 1}]}
        policies = parser.parse_json(json.dumps(document))
        assert policies["quick"].backoff_policy is BackOffPolicy.NONE

    def test_partial_exponential_block_keeps_defaults(self, parser: PolicyParser) -> None:
        policies = parser.parse_dict(
            {
                "policies": [
                    {
                        "name": "grow",
                        "max_attempts": 2,
                        "backoff_policy": "exponential",
                        "exponential": {"multiplier": 4},
                    }
                ]
            }
        )
        option = policies["grow"].exponential_option
        assert option.multiplier == 4
        assert option.max_interval == 2000
        assert policies["grow"].backoff == 1000

    def test_registered_error_resolves_to_type(self, parser: PolicyParser) -> None:
        parser.register_error(GatewayError)
        policies = parser.parse_dict(
            {"policies": [{"name": "gw", "max_attempts": 1, "retryable_errors": ["GatewayError"]}]}
        )
        assert policies["gw"].retryable_errors == frozenset({GatewayError})

    def test_parse_file(self, parser: PolicyParser, tmp_path: Path) -> None:
        path = tmp_path / "retry.yml"
        path.write_text(YAML_DOCUMENT)
        assert set(parser.parse_file(path)) == {"http", "db"}

    def test_parse_json_file(self, parser: PolicyParser, tmp_path: Path) -> None:
        path = tmp_path / "retry.json"
        path.write_text(json.dumps({"policies": [{"name": "a", "max_attempts": 0}]}))
        assert parser.parse_file(path)["a"].max_attempts == 0

    def test_missing_file(self, parser: PolicyParser, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            parser.parse_file(tmp_path / "absent.yaml")

    def test_unsupported_suffix(self, parser: PolicyParser, tmp_path: Path) -> None:
        path = tmp_path / "retry.toml"
        path.write_text("")
        with pytest.raises(ValueError, match="Unsupported file format"):
            parser.parse_file(path)


class TestPolicyParserErrors:
    def test_invalid_yaml(self, parser: PolicyParser) -> None:
        with pytest.raises(ValueError, match="Invalid YAML"):
            parser.parse_yaml("policies: [unclosed")

    def test_invalid_json(self, parser: PolicyParser) -> None:
        with pytest.raises(ValueError, match="Invalid JSON"):
            parser.parse_json("{not json")

    def test_schema_violation(self, parser: PolicyParser) -> None:
        with pytest.raises(ValueError, match="Invalid policy document"):
            parser.parse_dict({"policies": [{"name": "neg", "max_attempts": -1}]})

    def test_negative_backoff_rejected(self, parser: PolicyParser) -> None:
        with pytest.raises(ValueError, match="backoff"):
            parser.parse_dict({"policies": [{"name": "neg", "max_attempts": 1, "backoff": -5}]})

    def test_zero_backoff_accepted(self, parser: PolicyParser) -> None:
        document = {"policies": [{"name": "now", "max_attempts": 1, "backoff": 0}]}
        policies = parser.parse_dict(document)
        assert policies["now"].backoff is None
        assert policies["now"].backoff_policy is BackOffPolicy.NONE

    def test_unknown_field_rejected(self, parser: PolicyParser) -> None:
        with pytest.raises(ValueError):
            parser.parse_dict({"policies": [{"name": "x", "max_attempts": 1, "retries": 3}]})

    def test_duplicate_names(self, parser: PolicyParser) -> None:
        document = {"policies": [{"name": "a", "max_attempts": 1}] * 2}
        with pytest.raises(ValueError, match="Duplicate policy name"):
            parser.parse_dict(document)

    def test_unknown_predicate(self, parser: PolicyParser) -> None:
        document = {"policies": [{"name": "a", "max_attempts": 1, "retry_if": "nope"}]}
        with pytest.raises(ValueError, match="Unknown retry predicate 'nope'"):
            parser.parse_dict(document)

    def test_invariant_violation(self, parser: PolicyParser) -> None:
        document = {
            "policies": [
                {
                    "name": "capped",
                    "max_attempts": 1,
                    "backoff_policy": "exponential",
                    "backoff": 9000,
                }
            ]
        }
        with pytest.raises(ValueError, match="max_interval"):
            parser.parse_dict(document)


class TestValidate:
    def test_valid_document(self, parser: PolicyParser) -> None:
        assert parser.validate({"policies": [{"name": "ok", "max_attempts": 2}]}) == []

    def test_collects_schema_errors(self, parser: PolicyParser) -> None:
        errors = parser.validate({"policies": [{"max_attempts": -1}]})
        assert any("name" in e for e in errors)
        assert any("max_attempts" in e for e in errors)

    def test_missing_policies(self, parser: PolicyParser) -> None:
        errors = parser.validate({})
        assert errors and errors[0].startswith("policies")

    def test_semantic_errors(self, parser: PolicyParser) -> None:
        errors = parser.validate(
            {
                "policies": [
                    {"name": "a", "max_attempts": 1},
                    {"name": "a", "max_attempts": 1},
                    {"name": "b", "max_attempts": 1, "retry_if": "missing"},
                ]
            }
        )
        assert errors == [
            "Duplicate policy name: 'a'",
            "Unknown retry predicate 'missing'. "
            "Register with parser.register_predicate('missing', func)",
        ]
