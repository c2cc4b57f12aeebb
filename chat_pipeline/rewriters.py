"""
Utterance rewriters.

A rewriter decides whether an utterance encodes a command and, if so, returns
the encoded action (a JSON document, see actions.py). Rewriters are built per
(language, service) combo from named rewrite tables:

    rewrites/Base.yaml
    rewrites/Commands.yaml

Each table is a top-level "rules" list. Rule keys:
- utterance: regex searched in the (working copy of the) utterance
- replacement: rewrite template for rules without a command
- locale / service: regexes selecting the combos a rule applies to
- command: command id; only "activity" rules produce launchable actions
- args: JSON templates; \\1 or \\g<name> is replaced with the JSON-escaped
  text of that match group

Rules run in file order. A rule without a command rewrites the working text
that later rules see; the first matching "activity" rule ends the scan.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Union

import yaml

from logging_setup import get_logger, Component
from .errors import MalformedActionError

logger = get_logger(Component.REWRITERS)

ACTIVITY_COMMAND = "activity"

DEFAULT_TABLE_NAMES = ("Base", "Commands")

_MATCH_ALL = re.compile("")

# \\ (escaped backslash), \g<name-or-number>, \N
_GROUP_REF = re.compile(r"\\(\\)|\\g<([^>]*)>|\\(\d{1,2})")


class Rewriter(Protocol):
    """Capability mapping an utterance to an encoded action, or None."""

    id: str
    language_tag: str
    service_ref: str

    def apply(self, utterance: str) -> Optional[str]: ...


RewriterFactory = Callable[[str, Any, Sequence[str]], Sequence[Rewriter]]


def _compile(pattern: Any, key: str) -> re.Pattern:
    if pattern is None:
        return _MATCH_ALL
    try:
        return re.compile(str(pattern))
    except re.error as e:
        raise ValueError(f"Invalid {key} regex {pattern!r}: {e}") from e


def _group_key(ref: re.Match) -> Union[int, str]:
    key = ref.group(2) if ref.group(2) is not None else ref.group(3)
    return int(key) if key.isdigit() else key


def _check_group_refs(template: str, pattern: re.Pattern) -> None:
    for ref in _GROUP_REF.finditer(template):
        if ref.group(1):
            continue
        key = _group_key(ref)
        known = key <= pattern.groups if isinstance(key, int) else key in pattern.groupindex
        if not known:
            raise ValueError(f"Template {template!r} refers to unknown group {key!r} of {pattern.pattern!r}")


def expand_json_template(match: re.Match, template: str) -> str:
    """
    Fill group references in a JSON template.

    Group text is JSON-escaped, so quotes or backslashes in the utterance stay
    inside the string value they were captured into. Unmatched groups expand
    to "". Raises IndexError for an unknown group.
    """
    def group_text(ref: re.Match) -> str:
        if ref.group(1):
            return ref.group(0)
        value = match.group(_group_key(ref)) or ""
        return json.dumps(value, ensure_ascii=False)[1:-1]

    return _GROUP_REF.sub(group_text, template)


def service_ref_of(service: Any) -> str:
    """String form of a service reference, as matched by rule `service` regexes."""
    return "" if service is None else str(service)


@dataclass(frozen=True)
class RewriteRule:
    utterance: re.Pattern
    replacement: Optional[str] = None
    locale: re.Pattern = _MATCH_ALL
    service: re.Pattern = _MATCH_ALL
    command: Optional[str] = None
    args: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RewriteRule":
        if not isinstance(data, dict) or not data.get("utterance"):
            raise ValueError(f"Rewrite rule needs an 'utterance' pattern: {data!r}")
        args = data.get("args") or ()
        if isinstance(args, str):
            args = (args,)
        utterance = _compile(data["utterance"], "utterance")
        replacement = data.get("replacement")
        templates = [str(a) for a in args]
        if replacement is not None:
            replacement = str(replacement)
            templates.append(replacement)
        for template in templates:
            _check_group_refs(template, utterance)
        return cls(
            utterance=utterance,
            replacement=replacement,
            locale=_compile(data.get("locale"), "locale"),
            service=_compile(data.get("service"), "service"),
            command=data.get("command"),
            args=tuple(str(a) for a in args),
        )

    def applies_to(self, language: str, service_ref: str) -> bool:
        return bool(self.locale.search(language or "")) and bool(self.service.search(service_ref))


@dataclass(frozen=True)
class RuleRewriter:
    """Rewriter backed by an ordered list of rewrite rules."""

    id: str
    language_tag: str
    service_ref: str
    rules: tuple[RewriteRule, ...] = field(default=())

    def apply(self, utterance: str) -> Optional[str]:
        text = utterance
        for rule in self.rules:
            if rule.command is None:
                if rule.replacement is not None:
                    try:
                        text = rule.utterance.sub(rule.replacement, text)
                    except (re.error, IndexError) as e:
                        raise MalformedActionError(rule.replacement, detail=str(e)) from e
                continue

            if rule.command != ACTIVITY_COMMAND:
                continue

            match = rule.utterance.search(text)
            if match is None:
                continue

            if not rule.args:
                raise MalformedActionError("", detail=f"rule {rule.utterance.pattern!r} has no action argument")
            try:
                return expand_json_template(match, rule.args[0])
            except IndexError as e:
                raise MalformedActionError(rule.args[0], detail=str(e)) from e
        return None


def _default_rewrites_dir() -> Path:
    return Path(__file__).parent / "rewrites"


class RewriterProvider:
    """
    Rewriter configuration provider backed by a directory of rewrite tables.

    Tables are read once and cached; a missing table contributes no rewriter.
    Call it with (language, service, table_names) to get the ordered rewriters
    for that combo.
    """

    def __init__(self, rewrites_dir: Optional[Union[str, Path]] = None):
        self.rewrites_dir = Path(rewrites_dir) if rewrites_dir else _default_rewrites_dir()
        self._tables: Dict[str, tuple[RewriteRule, ...]] = {}

    def _table_path(self, name: str) -> Optional[Path]:
        for suffix in (".yaml", ".yml", ".json"):
            candidate = self.rewrites_dir / f"{name}{suffix}"
            if candidate.exists():
                return candidate
        return None

    def load_table(self, name: str) -> tuple[RewriteRule, ...]:
        if name in self._tables:
            return self._tables[name]

        path = self._table_path(name)
        if path is None:
            logger.warning("Rewrite table not found", table=name, rewrites_dir=str(self.rewrites_dir))
            rules: tuple[RewriteRule, ...] = ()
        else:
            with open(path, encoding="utf-8") as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ValueError(f"Rewrite table {path} is not valid YAML/JSON: {e}") from e
            if not isinstance(data, dict) or not isinstance(data.get("rules", []), list):
                raise ValueError(f"Rewrite table {path} must contain a top-level 'rules' list")
            rules = tuple(RewriteRule.from_dict(item) for item in data.get("rules", []))
            logger.debug("Rewrite table loaded", table=name, rules=len(rules))

        self._tables[name] = rules
        return rules

    def __call__(
        self,
        language: str,
        service: Any,
        table_names: Sequence[str] = DEFAULT_TABLE_NAMES,
    ) -> List[RuleRewriter]:
        service_ref = service_ref_of(service)
        rewriters: List[RuleRewriter] = []
        for name in table_names:
            rules = tuple(r for r in self.load_table(name) if r.applies_to(language, service_ref))
            if rules:
                rewriters.append(RuleRewriter(
                    id=name,
                    language_tag=language,
                    service_ref=service_ref,
                    rules=rules,
                ))
        return rewriters
