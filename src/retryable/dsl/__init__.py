"""Retry policy DSL parser for YAML/JSON definitions.

Allows declaring named retry policies in configuration files instead of
code.

Example YAML document:
```yaml
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
    retry_if: is_transient

  - name: db
    max_attempts: 2
    backoff: 250
    use_original_error: true
```

Usage:
    from retryable.dsl import PolicyParser

    parser = PolicyParser()
    parser.register_predicate("is_transient", lambda e: "503" in str(e))
    policies = parser.parse_file("retry.yaml")
    result = await retry_async(fetch, policies["http"], url)
"""

from __future__ import annotations

import builtins
import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from retryable.core.errors import PolicyConfigError
from retryable.core.models import ExponentialOption, RetryPolicy, RetryPredicate
from retryable.dsl.schemas import PolicyDefinition, PolicyDocument

logger = logging.getLogger(__name__)


class PolicyParser:
    """Parse retry policy definitions from YAML or JSON documents.

    Converts declarative definitions into normalized :class:`RetryPolicy`
    objects keyed by policy name.
    """

    def __init__(self) -> None:
        self._predicates: dict[str, RetryPredicate] = {}
        self._errors: dict[str, type[BaseException]] = {}

    def register_predicate(self, name: str, func: RetryPredicate) -> None:
        """Make *func* referenceable from a policy's ``retry_if`` field.

        Example:
            parser.register_predicate("is_throttled", lambda e: "429" in str(e))
        """
        self._predicates[name] = func
        logger.debug("Registered retry predicate: %s", name)

    def register_error(self, exc_type: type[BaseException], name: str | None = None) -> None:
        """Resolve *name* (default: the class name) in ``retryable_errors`` to *exc_type*."""
        self._errors[name or exc_type.__name__] = exc_type
        logger.debug("Registered error type: %s", name or exc_type.__name__)

    def parse_file(self, filepath: str | Path) -> dict[str, RetryPolicy]:
        """Parse policies from a YAML or JSON file.

        Raises:
            ValueError: If the file format or its content is invalid
            FileNotFoundError: If the file doesn't exist
        """
        path = Path(filepath)

        if not path.exists():
            raise FileNotFoundError(f"Policy file not found: {filepath}")

        content = path.read_text()

        if path.suffix in [".yaml", ".yml"]:
            return self.parse_yaml(content)
        elif path.suffix == ".json":
            return self.parse_json(content)
        else:
            raise ValueError(f"Unsupported file format: {path.suffix}. Use .yaml, .yml, or .json")

    def parse_yaml(self, yaml_content: str) -> dict[str, RetryPolicy]:
        """Parse policies from a YAML string."""
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML: {exc}") from exc

        return self.parse_dict(data)

    def parse_json(self, json_content: str) -> dict[str, RetryPolicy]:
        """Parse policies from a JSON string."""
        try:
            data = json.loads(json_content)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON: {exc}") from exc

        return self.parse_dict(data)

    def parse_dict(self, data: Any) -> dict[str, RetryPolicy]:
        """Parse policies from an already-loaded mapping.

        Raises:
            ValueError: On schema violations, duplicate names, unknown
                predicates or policy invariant violations.
        """
        try:
            document = PolicyDocument.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid policy document: {exc}") from exc

        policies: dict[str, RetryPolicy] = {}
        for definition in document.policies:
            if definition.name in policies:
                raise ValueError(f"Duplicate policy name: '{definition.name}'")
            policies[definition.name] = self._build_policy(definition)

        logger.info("Parsed %d retry policies: %s", len(policies), ", ".join(policies))
        return policies

    def validate(self, data: Any) -> list[str]:
        """Validate a policy document and return error messages (empty if valid)."""
        try:
            document = PolicyDocument.model_validate(data)
        except ValidationError as exc:
            return [
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            ]

        errors: list[str] = []
        seen: set[str] = set()
        for definition in document.policies:
            if definition.name in seen:
                errors.append(f"Duplicate policy name: '{definition.name}'")
                continue
            seen.add(definition.name)
            try:
                self._build_policy(definition)
            except ValueError as exc:
                errors.append(str(exc))
        return errors

    # ------------------------------------------------------------------

    def _build_policy(self, definition: PolicyDefinition) -> RetryPolicy:
        predicate = None
        if definition.retry_if is not None:
            if definition.retry_if not in self._predicates:
                raise ValueError(
                    f"Unknown retry predicate '{definition.retry_if}'. "
                    f"Register with parser.register_predicate('{definition.retry_if}', func)"
                )
            predicate = self._predicates[definition.retry_if]

        exponential = None
        if definition.exponential is not None:
            exponential = ExponentialOption(
                **definition.exponential.model_dump(exclude_unset=True)
            )

        try:
            return RetryPolicy(
                max_attempts=definition.max_attempts,
                backoff_policy=definition.backoff_policy,
                backoff=definition.backoff,
                exponential_option=exponential,
                retry_predicate=predicate,
                retryable_errors=frozenset(
                    self._resolve_error(name) for name in definition.retryable_errors
                ),
                use_original_error=definition.use_original_error,
                log_on_exhaustion=definition.log_on_exhaustion,
            )
        except PolicyConfigError as exc:
            raise ValueError(f"Invalid policy '{definition.name}': {exc}") from exc

    def _resolve_error(self, name: str) -> type[BaseException] | str:
        """Map *name* to a registered or builtin exception type, else keep it as a kind."""
        if name in self._errors:
            return self._errors[name]
        candidate = getattr(builtins, name, None)
        if isinstance(candidate, type) and issubclass(candidate, BaseException):
            return candidate
        return name
