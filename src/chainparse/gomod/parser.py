"""Minimal go.mod parser covering the directives chainparse reads."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field

from chainparse.errors import ManifestError

_TOKEN_RE = re.compile(r'//.*|"(?:[^"\\]|\\.)*"|`[^`]*`|[()]|[^\s()"`]+')

# Directives go accepts but that carry nothing chainparse extracts.
_IGNORED_VERBS = frozenset({"go", "toolchain", "godebug", "exclude", "retract", "tool", "ignore"})


@dataclass(frozen=True, slots=True)
class ModuleVersion:
    path: str
    version: str = ""


@dataclass(frozen=True, slots=True)
class Replace:
    old: ModuleVersion
    new: ModuleVersion


@dataclass(slots=True)
class GoModFile:
    module: str = ""
    require: list[ModuleVersion] = field(default_factory=list)
    replace: list[Replace] = field(default_factory=list)


def _unquote(token: str, lineno: int) -> str:
    if token.startswith("`"):
        return token[1:-1]
    if token.startswith('"'):
        try:
            value = json.loads(token)
        except json.JSONDecodeError as exc:
            raise ManifestError(f"go.mod:{lineno}: invalid quoted string {token}") from exc
        return str(value)
    return token


def _tokenize(line: str, lineno: int) -> list[str]:
    tokens: list[str] = []
    pos = 0
    for match in _TOKEN_RE.finditer(line):
        gap = line[pos : match.start()]
        if gap.strip():
            raise ManifestError(f"go.mod:{lineno}: unexpected input {gap.strip()!r}")
        token = match.group(0)
        pos = match.end()
        if token.startswith("//"):
            return tokens
        tokens.append(token)
    tail = line[pos:].strip()
    if tail:
        raise ManifestError(f"go.mod:{lineno}: unexpected input {tail!r}")
    return tokens


def _parse_require(args: list[str], lineno: int) -> ModuleVersion:
    if len(args) != 2:
        raise ManifestError(f"go.mod:{lineno}: usage: require module/path v1.2.3")
    return ModuleVersion(_unquote(args[0], lineno), _unquote(args[1], lineno))


def _parse_replace(args: list[str], lineno: int) -> Replace:
    try:
        arrow = args.index("=>")
    except ValueError:
        raise ManifestError(
            f"go.mod:{lineno}: usage: replace module/path [v1.2.3] => other/module v1.4"
        ) from None
    left = [_unquote(item, lineno) for item in args[:arrow]]
    right = [_unquote(item, lineno) for item in args[arrow + 1 :]]
    if len(left) not in (1, 2) or len(right) not in (1, 2):
        raise ManifestError(
            f"go.mod:{lineno}: usage: replace module/path [v1.2.3] => other/module v1.4"
        )
    old = ModuleVersion(left[0], left[1] if len(left) == 2 else "")
    new = ModuleVersion(right[0], right[1] if len(right) == 2 else "")
    return Replace(old=old, new=new)


def _apply(mod: GoModFile, verb: str, args: list[str], lineno: int) -> None:
    if verb == "module":
        if len(args) != 1:
            raise ManifestError(f"go.mod:{lineno}: usage: module module/path")
        mod.module = _unquote(args[0], lineno)
    elif verb == "require":
        mod.require.append(_parse_require(args, lineno))
    elif verb == "replace":
        mod.replace.append(_parse_replace(args, lineno))
    elif verb not in _IGNORED_VERBS:
        raise ManifestError(f"go.mod:{lineno}: unknown directive: {verb}")


def parse_go_mod(text: str) -> GoModFile:
    """Parse go.mod source into its module, require and replace directives.

    Raises:
        ManifestError: on any syntax error, with the offending line number.
    """
    mod = GoModFile()
    block_verb: str | None = None
    block_line = 0
    for lineno, raw in enumerate(text.splitlines(), start=1):
        tokens = _tokenize(raw, lineno)
        if not tokens:
            continue
        if block_verb is not None:
            if tokens == [")"]:
                block_verb = None
                continue
            if ")" in tokens or "(" in tokens:
                raise ManifestError(
                    f"go.mod:{lineno}: unexpected parenthesis in {block_verb} block"
                )
            _apply(mod, block_verb, tokens, lineno)
            continue

        verb, args = tokens[0], tokens[1:]
        if verb in {"(", ")"}:
            raise ManifestError(f"go.mod:{lineno}: unexpected {verb!r}")
        if args and args[0] == "(":
            if args[1:] == [")"]:
                continue
            if len(args) != 1:
                raise ManifestError(f"go.mod:{lineno}: syntax error after {verb} (")
            block_verb = verb
            block_line = lineno
            continue
        _apply(mod, verb, args, lineno)

    if block_verb is not None:
        raise ManifestError(f"go.mod:{block_line}: unterminated {block_verb} block")
    return mod
