"""Turn raw model output into ReportResults.

Scorecard output becomes ten booleans plus ``total_score``; summary output
becomes a cleaned markdown document with the five fixed sections.
"""
from __future__ import annotations

import enum
import logging
import re
from typing import Any, Dict, List

from marketmetric.errors import AnalysisFormatError
from marketmetric.services.prompt_builder import CRITERIA_KEYS, SUMMARY_HEADINGS

logger = logging.getLogger(__name__)

SUMMARY_TITLE = "# Market Report Summary"

_THINK_BLOCK_RE = re.compile(r"<(think|thinking)>.*?</\1>", re.DOTALL | re.IGNORECASE)
_THINK_TAG_RE = re.compile(r"</?(think|thinking)>", re.IGNORECASE)
_THINK_OPEN_RE = re.compile(r"<(think|thinking)>", re.IGNORECASE)
_THINK_CLOSE_RE = re.compile(r"</(think|thinking)>", re.IGNORECASE)
_NUMBERED_RE = re.compile(r"^\d+\.")
_HEADING_MARKUP_RE = re.compile(r"^[#*_\s\d.)]*")
_LABEL_WORD = r"(?:[A-Z][A-Za-z0-9'()/\-]*|&|of|and|in|by)"
_LABEL_RE = re.compile(r"^([A-Z][A-Za-z0-9'()/\-]*(?: " + _LABEL_WORD + r"){0,4}):\s*(.*)$")
_BOLD_LABEL_RE = re.compile(r"^\*\*([A-Z][A-Za-z0-9 &/()'\-]{1,40})(?::\*\*|\*\*:)\s*(.*)$")
_FIGURE_RE = re.compile(
    r"CAGR of \d+(?:\.\d+)?%"
    r"|[$€£]\s?\d[\d,]*(?:\.\d+)?(?:\s?(?:trillion|billion|million|thousand|bn|mn|[BMK])\b)?"
    r"|\d+(?:\.\d+)?%"
)
_INLINE_CODE_RE = re.compile(r"(`[^`]*`)")


class ParsePolicy(enum.Enum):
    STRICT = "strict"
    LENIENT = "lenient"

    @classmethod
    def parse(cls, value) -> "ParsePolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValueError(f"Unknown parse policy: {value!r}") from None


def strip_thinking(text: str) -> str:
    text = _THINK_BLOCK_RE.sub("", text or "")
    # A stray closing marker ends reasoning whose opening tag was cut off;
    # only what follows the last one is the answer.
    closes = list(_THINK_CLOSE_RE.finditer(text))
    if closes:
        text = text[closes[-1].end():]
    # An unterminated block means the model never closed its reasoning;
    # keep only what came before the marker.
    m = _THINK_OPEN_RE.search(text)
    if m:
        text = text[:m.start()]
    return _THINK_TAG_RE.sub("", text)


# ============ Scorecard ============

def parse_answers(raw: str) -> List[bool]:
    answers: List[bool] = []
    for line in strip_thinking(raw).splitlines():
        line = line.strip()
        if _NUMBERED_RE.match(line):
            answers.append("yes" in line.lower())
    return answers


def parse_scorecard(raw: str, policy: ParsePolicy = ParsePolicy.LENIENT) -> Dict[str, Any]:
    answers = parse_answers(raw)
    expected = len(CRITERIA_KEYS)

    if len(answers) != expected:
        if policy is ParsePolicy.STRICT:
            raise AnalysisFormatError(
                "Invalid LLM response format - expected 10 yes/no answers",
                details=f"Got {len(answers)} numbered answers",
            )
        logger.warning("Expected %d answers from model, got %d; normalizing", expected, len(answers))
        answers = (answers + [False] * expected)[:expected]

    results: Dict[str, Any] = dict(zip(CRITERIA_KEYS, answers))
    results["total_score"] = sum(1 for a in answers if a)
    return results


# ============ Summary ============

def _heading_keyword(line: str) -> str:
    core = _HEADING_MARKUP_RE.sub("", line.strip())
    core = core.rstrip("*_: ").strip()
    return core if core in SUMMARY_HEADINGS else ""


def _drop_preamble(text: str, policy: ParsePolicy) -> str:
    first = SUMMARY_HEADINGS[0]
    matches = [m.start() for m in re.finditer(re.escape(first), text)]
    if not matches:
        if policy is ParsePolicy.STRICT:
            raise AnalysisFormatError(
                "Model summary is missing required sections",
                details=f"No '{first}' heading found",
            )
        logger.warning("Summary has no '%s' heading; keeping model output as is", first)
        return text

    # Prefer an occurrence that sits on its own heading line over one
    # mentioned in passing by a preamble sentence.
    idx, start = matches[0], matches[0]
    for pos in matches:
        line_start = text.rfind("\n", 0, pos) + 1
        if not _HEADING_MARKUP_RE.sub("", text[line_start:pos]):
            idx, start = pos, line_start
            break
    line_start = text.rfind("\n", 0, idx) + 1

    # A title line the model wrote before the first section survives.
    title = ""
    for line in text[:line_start].splitlines():
        s = line.strip()
        if s.startswith("# "):
            title = s
    body = text[start:]
    return f"{title}\n\n{body}" if title else body


def _emphasize_figures(line: str) -> str:
    parts = _INLINE_CODE_RE.split(line)
    for i in range(0, len(parts), 2):
        parts[i] = _FIGURE_RE.sub(lambda m: f"`{m.group(0).strip()}`", parts[i])
    return "".join(parts)


def _normalize_line(line: str) -> str:
    keyword = _heading_keyword(line)
    if keyword:
        return f"## {keyword}"

    stripped = line.strip()
    if stripped.startswith("#"):
        return stripped

    m = _BOLD_LABEL_RE.match(stripped) or _LABEL_RE.match(stripped)
    if m:
        label, value = m.group(1).strip(), m.group(2).strip()
        line = f"- **{label}:** {value}".rstrip()

    return _emphasize_figures(line.rstrip())


def _separate_sections(lines: List[str]) -> List[str]:
    out: List[str] = []
    seen_heading = False
    for line in lines:
        if line.startswith("## "):
            if seen_heading:
                while out and (not out[-1].strip() or out[-1].strip() == "---"):
                    out.pop()
                out.extend(["", "---", ""])
            seen_heading = True
        out.append(line)
    return out


def format_summary(raw: str, policy: ParsePolicy = ParsePolicy.LENIENT) -> str:
    text = strip_thinking(raw).replace("\r\n", "\n").strip()
    text = _drop_preamble(text, policy).strip()

    if not text.startswith("# "):
        text = f"{SUMMARY_TITLE}\n\n{text}"

    lines = [_normalize_line(line) for line in text.split("\n")]
    lines = [line if line.strip() else "" for line in lines]

    headings = [line[3:] for line in lines if line.startswith("## ")]
    if headings != list(SUMMARY_HEADINGS):
        if policy is ParsePolicy.STRICT:
            raise AnalysisFormatError(
                "Model summary is missing required sections",
                details=f"Expected sections {list(SUMMARY_HEADINGS)}, got {headings}",
            )
        logger.warning("Summary sections out of shape: %s", headings)
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)

    text = "\n".join(_separate_sections(text.split("\n")))
    return re.sub(r"\n{3,}", "\n\n", text).strip() + "\n"


def parse_summary(raw: str, policy: ParsePolicy = ParsePolicy.LENIENT) -> Dict[str, Any]:
    return {"summary": format_summary(raw, policy)}
