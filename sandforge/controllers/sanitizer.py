"""
Fragment sanitizer.

A denylist text filter for generated particle fragments. It suppresses the
specific constructs known to break the simulation (callable definitions,
unbounded loops, dynamic evaluation, timers, host access); it is not a
capability sandbox. Every rule is idempotent, so sanitizing twice is the
same as sanitizing once.
"""

import re
import textwrap
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from loguru import logger

PLACEHOLDER = "void_"
INERT_CALL = "log("

_FENCE = re.compile(r"```[\w+-]*[ \t]*\n(.*?)```", re.DOTALL)
_STRAY_FENCE = re.compile(r"^[ \t]*```[\w+-]*[ \t]*$", re.MULTILINE)
_OUTER_DEF = re.compile(
    r"\A(?:async[ \t]+)?def[ \t]+\w+[ \t]*\([^)]*\)[^:\n]*:[ \t]*(?:#[^\n]*)?(?:\n(?P<block>.*)|(?P<inline>[^\n]+))\Z",
    re.DOTALL,
)

_NOT_IN = r"(?:(?![ \t]in[ \t])[^\n])+?"
_NOT_BOUNDED = r"(?![ \t]*(?:_once|_when)\()"
# bracketed segments, so slice and dict colons do not end an inline header
_PARENS = r"\((?:[^()\n]|\((?:[^()\n]|\([^()\n]*\))*\))*\)"
_SQUARE = r"\[(?:[^\[\]\n]|\[[^\[\]\n]*\])*\]"
_ITERABLE = r"((?:" + _PARENS + "|" + _SQUARE + r"|\{[^{}\n]*\}|[^:\n\[\](){}])+?)"


@dataclass
class SanitizeRule:
    """One text rewrite applied by the sanitizer."""
    name: str
    pattern: re.Pattern
    replacement: Union[str, Callable[[re.Match], str]]

    def apply(self, text: str):
        return self.pattern.subn(self.replacement, text)


DEFAULT_RULES: List[SanitizeRule] = [
    # callable definitions: the header becomes a dead branch
    SanitizeRule(
        "def",
        re.compile(r"^([ \t]*)(?:async[ \t]+)?def[ \t]+\w+[ \t]*\([^)]*\)[^:\n]*:", re.MULTILINE),
        r"\1if False:",
    ),
    SanitizeRule(
        "class",
        re.compile(r"^([ \t]*)class[ \t]+\w+[^:\n]*:", re.MULTILINE),
        r"\1if False:",
    ),
    SanitizeRule("lambda", re.compile(r"\blambda\b[^:\n]*:"), "None and "),

    # loops: at most one pass, break/continue stay legal
    SanitizeRule(
        "while",
        re.compile(r"^([ \t]*)while\b[ \t]*(.+?)[ \t]*:[ \t]*(?:#[^\n]*)?$", re.MULTILINE),
        r"\1for _ in _when(\2):",
    ),
    SanitizeRule("while_inline", re.compile(r"^([ \t]*)while\b", re.MULTILINE), r"\1if"),
    SanitizeRule(
        "for",
        re.compile(
            r"^([ \t]*)for[ \t]+(" + _NOT_IN + r")[ \t]+in[ \t]+" + _NOT_BOUNDED
            + r"(.+?)[ \t]*:[ \t]*(?:#[^\n]*)?$",
            re.MULTILINE,
        ),
        r"\1for \2 in _once(\3):",
    ),
    SanitizeRule(
        "for_inline",
        re.compile(
            r"^([ \t]*)for[ \t]+(" + _NOT_IN + r")[ \t]+in[ \t]+" + _NOT_BOUNDED + _ITERABLE + r"[ \t]*:",
            re.MULTILINE,
        ),
        r"\1for \2 in _once(\3):",
    ),

    # dynamic evaluation and timers
    SanitizeRule(
        "eval",
        re.compile(r"\b(?:eval|exec|execfile|compile|__import__|breakpoint|input)[ \t]*\("),
        INERT_CALL,
    ),
    SanitizeRule(
        "timer",
        re.compile(r"\b(?:(?:threading|time|asyncio)[ \t]*\.[ \t]*)?(?:Timer|sleep)[ \t]*\("),
        INERT_CALL,
    ),
    SanitizeRule(
        "import",
        re.compile(r"^([ \t]*)(?:import[ \t]+[\w.]+|from[ \t]+[\w.]+[ \t]+import\b)[^\n]*", re.MULTILINE),
        r"\1pass",
    ),

    # host and interpreter access
    SanitizeRule(
        "host",
        re.compile(r"\b(?:os|sys|builtins|subprocess|importlib|shutil|socket|ctypes|__builtins__)[ \t]*\."),
        PLACEHOLDER,
    ),
    SanitizeRule("scope", re.compile(r"\b(?:globals|locals|vars)[ \t]*\([ \t]*\)"), PLACEHOLDER),
    SanitizeRule("dunder", re.compile(r"\.[ \t]*__\w+__"), "." + PLACEHOLDER),
    SanitizeRule("private", re.compile(r"\.[ \t]*_\w*"), "." + PLACEHOLDER),
]


def normalize(text: str) -> str:
    """
    Reduce a raw fragment to a bare statement block.

    Strips Markdown fences, trailing whitespace and common indentation, and
    unwraps a fragment that is a single function definition into its body.
    """
    text = text.replace("\r\n", "\n").expandtabs(4)

    fenced = _FENCE.search(text)
    if fenced:
        text = fenced.group(1)
    text = _STRAY_FENCE.sub("", text)

    text = textwrap.dedent("\n".join(line.rstrip() for line in text.split("\n"))).strip("\n")

    outer = _OUTER_DEF.match(text)
    if outer:
        if outer.group("inline") is not None:
            text = outer.group("inline").strip()
        else:
            block = outer.group("block")
            if all(not line or line[0] in " \t" for line in block.split("\n")):
                text = textwrap.dedent(block).strip("\n")
    return text


class FragmentSanitizer:
    """
    Applies the denylist rules to a fragment.

    Attributes:
        rules (List[SanitizeRule]): Rules applied in order after normalization
    """

    def __init__(self, rules: Optional[List[SanitizeRule]] = None):
        self.rules = list(rules if rules is not None else DEFAULT_RULES)

    def sanitize(self, text: str) -> str:
        """
        Neutralize dangerous constructs in a raw fragment.

        Args:
            text: Raw fragment text

        Returns:
            Sanitized fragment text
        """
        text = normalize(text or "")
        fired = []
        for rule in self.rules:
            text, count = rule.apply(text)
            if count:
                fired.append(f"{rule.name}x{count}")
        if fired:
            logger.debug(f"Sanitizer rewrote: {', '.join(fired)}")
        return text
