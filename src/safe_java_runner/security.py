"""Static denylist scan over raw Java source.

This is a best-effort pre-filter, not an isolation boundary. Matching raw
text is defeated by string concatenation, reflection, unicode escapes or any
API not listed. Real isolation (unprivileged user, read-only filesystem,
no network, rlimits) belongs to whatever hosts the toolchain processes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping

from .policy import DEFAULT_BLOCKED_PATTERNS


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Verdict of one security scan.

    Example:
        ```python
        verdict = ScanResult(blocked=True, rule="socket", reason="Restricted pattern 'socket' matched")
        ```
    """

    blocked: bool
    rule: str | None = None
    reason: str | None = None

    @classmethod
    def clean(cls) -> "ScanResult":
        """Return the verdict for source that matched no rule.

        Example:
            ```python
            ScanResult.clean().blocked  # False
            ```
        """
        return cls(blocked=False)


class SecurityFilter:
    """Check source text against a named set of forbidden patterns.

    Example:
        ```python
        flt = SecurityFilter({"process_builder": r"ProcessBuilder"})
        flt.scan("new ProcessBuilder(\\"ls\\")").blocked  # True
        ```
    """

    def __init__(self, patterns: Mapping[str, str] | None = None) -> None:
        """Compile the rule table; defaults to the bundled denylist.

        Example:
            ```python
            flt = SecurityFilter(policy.blocked_patterns)
            ```
        """
        source = DEFAULT_BLOCKED_PATTERNS if patterns is None else patterns
        self._rules = [(name, re.compile(pattern)) for name, pattern in source.items()]

    @property
    def rule_names(self) -> list[str]:
        """Return rule names in evaluation order.

        Example:
            ```python
            names = SecurityFilter().rule_names
            ```
        """
        return [name for name, _ in self._rules]

    def scan(self, source_text: str) -> ScanResult:
        """Return the first matching rule as a blocked verdict, else clean.

        Example:
            ```python
            verdict = SecurityFilter().scan("System.exit(0);")
            ```
        """
        for name, pattern in self._rules:
            if pattern.search(source_text):
                return ScanResult(
                    blocked=True,
                    rule=name,
                    reason=f"Restricted pattern '{name}' matched",
                )
        return ScanResult.clean()
