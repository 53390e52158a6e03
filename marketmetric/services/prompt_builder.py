"""Prompt construction for the scorecard and summary analyses."""
from __future__ import annotations

import enum
from typing import List, Tuple


class AnalysisMode(enum.Enum):
    SCORECARD = "scorecard"
    SUMMARY = "summary"

    @classmethod
    def parse(cls, value) -> "AnalysisMode":
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValueError(f"Unknown analysis mode: {value!r}") from None


ANALYSIS_QUESTIONS: Tuple[str, ...] = (
    "Does the report include the publication date?",
    "Does the report identify the author or research organization?",
    "Does the report provide numerical values for the Total Addressable Market (TAM)?",
    "Does the report present a Compound Annual Growth Rate (CAGR) or similar metric for market growth?",
    "Does the report identify distinct customer segments within the market?",
    "Does the report describe the competitive landscape?",
    "Does the report include a section on emerging technologies or innovations disrupting the market?",
    "Does the report discuss industry trends?",
    "Does the report offer a regional or geographic breakdown of the market?",
    "Does the report identify regulatory requirements affecting the market?",
)

# Same order as ANALYSIS_QUESTIONS
CRITERIA_KEYS: Tuple[str, ...] = (
    "has_publication_date",
    "has_author",
    "has_tam",
    "has_cagr",
    "has_customer_segments",
    "has_competitive_landscape",
    "has_emerging_tech",
    "has_industry_trends",
    "has_geographic_breakdown",
    "has_regulatory_requirements",
)

SUMMARY_HEADINGS: Tuple[str, ...] = (
    "EXECUTIVE SUMMARY",
    "MARKET SIZE & GROWTH",
    "MARKET SEGMENTATION",
    "COMPETITIVE LANDSCAPE",
    "EMERGING TRENDS",
)

SECTION_KEYWORDS: Tuple[str, ...] = (
    "executive summary",
    "overview",
    "market size",
    "market value",
    "cagr",
    "growth rate",
    "forecast",
    "segmentation",
    "segment",
    "competitive landscape",
    "key players",
    "market share",
    "trends",
    "emerging",
    "innovation",
    "regulatory",
    "regional",
    "geographic",
)

SCORECARD_TEXT_LIMIT = 8000
FILTERED_TEXT_LIMIT = 50000
SUMMARY_TEXT_LIMIT = 40000
MIN_RELEVANT_PARAGRAPHS = 20
EDGE_PARAGRAPHS = 10

SCORECARD_SYSTEM_PROMPT = (
    "You are an expert at analyzing market research reports. Be conservative in your "
    "assessment - only answer yes if the information is clearly stated in the report."
)

SUMMARY_SYSTEM_PROMPT = (
    "You are a senior market research analyst. You write concise, factual markdown "
    "summaries and never add commentary about yourself or the task."
)


SCORECARD_TEMPERATURE = 0.1
SUMMARY_TEMPERATURE = 0.3
SCORECARD_MAX_TOKENS = 300
SUMMARY_MAX_TOKENS = 4000

# Returned instead of a model answer when the report does not fit the
# model's context window.
CANNED_SCORECARD = "\n".join(f"{i}. no" for i in range(1, len(ANALYSIS_QUESTIONS) + 1))

CANNED_SUMMARY = "\n\n".join(
    f"## {h}\nThe report was too long to analyze in full. Try a shorter excerpt of the report."
    for h in SUMMARY_HEADINGS
)


def canned_completion(mode: AnalysisMode) -> str:
    return CANNED_SUMMARY if mode is AnalysisMode.SUMMARY else CANNED_SCORECARD


def clamp_text(s: str, limit: int) -> str:
    return (s or "")[:limit]


def split_paragraphs(text: str) -> List[str]:
    paragraphs: List[str] = []
    current: List[str] = []
    for line in (text or "").splitlines():
        if line.strip():
            current.append(line.rstrip())
        elif current:
            paragraphs.append("\n".join(current))
            current = []
    if current:
        paragraphs.append("\n".join(current))
    return paragraphs


def filter_relevant_text(text: str, limit: int = FILTERED_TEXT_LIMIT) -> str:
    """Keep paragraphs that look like report sections.

    Short or oddly worded reports rarely hit the keyword list, so when fewer
    than MIN_RELEVANT_PARAGRAPHS match the opening and closing paragraphs are
    kept as well.
    """
    paragraphs = split_paragraphs(text)
    keep = set()
    for i, para in enumerate(paragraphs):
        low = para.lower()
        if any(kw in low for kw in SECTION_KEYWORDS):
            keep.add(i)

    if len(keep) < MIN_RELEVANT_PARAGRAPHS:
        keep.update(range(min(EDGE_PARAGRAPHS, len(paragraphs))))
        keep.update(range(max(len(paragraphs) - EDGE_PARAGRAPHS, 0), len(paragraphs)))

    filtered = "\n\n".join(paragraphs[i] for i in sorted(keep))
    return clamp_text(filtered, limit)


def scorecard_prompt(text: str) -> str:
    questions = "\n".join(f"{i}. {q}" for i, q in enumerate(ANALYSIS_QUESTIONS, start=1))
    return f"""
You are an expert market research analyst. Analyze the following market report text and answer these yes/no questions:

{questions}

Answer each question with exactly "yes" or "no", one answer per line, as a numbered list in this format:
1. yes
2. no
...and so on up to 10.

Do not output anything else: no explanations, no headings, no extra lines.

Here is the market report text to analyze:
{clamp_text(text, SCORECARD_TEXT_LIMIT)}
""".strip()


def summary_prompt(text: str) -> str:
    filtered = clamp_text(filter_relevant_text(text), SUMMARY_TEXT_LIMIT)
    headings = "\n".join(f"## {h}" for h in SUMMARY_HEADINGS)
    return f"""
Summarize the market research report below as a markdown document.

Use exactly these five section headings, in this order, and no others:
{headings}

Rules:
- Start your output directly with "## {SUMMARY_HEADINGS[0]}". Nothing may come before it.
- No preamble, no introduction, no closing remarks, no notes about what you are doing.
- Under each heading use short paragraphs or bullet points with the concrete figures from the report (market values, growth rates, CAGR, shares, dates, company names).
- If the report has no information for a section, write "Not covered in the report." under that heading.

Market report text:
{filtered}
""".strip()


def build_prompt(mode: AnalysisMode, text: str) -> Tuple[str, str]:
    """Return (system, user) messages for the given mode."""
    if mode is AnalysisMode.SUMMARY:
        return SUMMARY_SYSTEM_PROMPT, summary_prompt(text)
    return SCORECARD_SYSTEM_PROMPT, scorecard_prompt(text)
