"""PDF text extraction.

Extraction never fails the pipeline: empty input, unreadable PDFs, PDFs with
no text layer and parses that run past the timeout all return the sample
report instead. The returned ``Extraction`` says which one the caller got.
"""
from __future__ import annotations

import io
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import List, Optional

import PyPDF2

from marketmetric.errors import ExtractionFailure

logger = logging.getLogger(__name__)

SOURCE_PDF = "pdf"
SOURCE_FALLBACK = "fallback"

DEFAULT_TIMEOUT = 30.0

SAMPLE_REPORT_TEXT = """
MARKET RESEARCH REPORT
Global Artificial Intelligence in Healthcare Market
Publication Date: March 15, 2023
Prepared by: HealthTech Analytics Inc.

EXECUTIVE SUMMARY
The global Artificial Intelligence in Healthcare market was valued at $10.4 billion in 2022 and is projected to reach $187.95 billion by 2030, growing at a CAGR of 37.5% during the forecast period.

MARKET SEGMENTATION
By Application:
- Medical Diagnosis: 35%
- Drug Discovery: 25%
- Patient Monitoring: 20%
- Others: 20%

By End User:
- Hospitals & Clinics: 45%
- Pharmaceutical Companies: 30%
- Research Institutions: 15%
- Others: 10%

REGIONAL ANALYSIS
- North America: 42%
- Europe: 28%
- Asia Pacific: 21%
- Rest of World: 9%

COMPETITIVE LANDSCAPE
Key players include:
- NVIDIA Corporation
- IBM Corporation
- Microsoft Corporation
- Google LLC
- Apple Inc.
- Amazon Web Services

EMERGING TECHNOLOGIES
Machine Learning algorithms, Natural Language Processing, and Computer Vision technologies are driving innovation in healthcare AI solutions.

REGULATORY CONSIDERATIONS
FDA regulations for AI/ML-based software as medical devices (SaMD) continue to evolve, with the proposed regulatory framework aiming to address the unique characteristics of these technologies.
"""


@dataclass(frozen=True)
class Extraction:
    text: str
    source: str

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK


def fallback_extraction() -> Extraction:
    return Extraction(text=SAMPLE_REPORT_TEXT, source=SOURCE_FALLBACK)


def extract_pdf_text(data: bytes) -> str:
    reader = PyPDF2.PdfReader(io.BytesIO(data))
    parts: List[str] = []
    for page in reader.pages:
        parts.append(page.extract_text() or "")
    return "\n".join(parts).strip()


def _parse_with_timeout(data: bytes, timeout: float) -> str:
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(extract_pdf_text, data)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout as e:
        raise ExtractionFailure(f"PDF parsing timed out after {timeout:g}s") from e
    except Exception as e:
        raise ExtractionFailure(f"PDF parsing failed: {type(e).__name__}: {e}") from e
    finally:
        # A timed-out parse keeps running in its thread; don't wait for it.
        executor.shutdown(wait=False)


def extract(data: Optional[bytes], use_fallback: bool = False, timeout: float = DEFAULT_TIMEOUT) -> Extraction:
    if use_fallback:
        logger.info("Mock mode enabled, using sample report text")
        return fallback_extraction()
    if not data:
        logger.warning("Empty upload, using sample report text")
        return fallback_extraction()

    try:
        text = _parse_with_timeout(data, timeout)
    except ExtractionFailure as e:
        logger.warning("%s; using sample report text", e.message)
        return fallback_extraction()

    if not text.strip():
        logger.warning("PDF parsing returned empty text, using sample report text")
        return fallback_extraction()

    return Extraction(text=text, source=SOURCE_PDF)
