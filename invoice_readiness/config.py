"""
Configuration constants and enums for the Invoice Readiness Analyzer.
"""

import logging
import os
from enum import Enum
from typing import Final

# ============================================================================
# Allowed Currencies
# ============================================================================

ALLOWED_CURRENCIES: Final[tuple[str, ...]] = (
    "AED",  # UAE Dirham
    "SAR",  # Saudi Riyal
    "MYR",  # Malaysian Ringgit
    "USD",  # US Dollar
)

# ============================================================================
# Validation Tolerances
# ============================================================================

# Tolerance for floating-point amount comparisons (e.g., excl_vat + vat ≈ incl_vat)
AMOUNT_TOLERANCE: Final[float] = float(os.getenv("AMOUNT_TOLERANCE", "0.01"))

# Only this many failing line items are reported by LINE_MATH
MAX_LINE_MATH_EXAMPLES: Final[int] = 5

# ============================================================================
# Field Detection
# ============================================================================

# Best similarity at or above this is a confident match
MATCH_THRESHOLD: Final[float] = 0.8

# Candidates must score strictly above this to be considered at all
CLOSE_MATCH_THRESHOLD: Final[float] = 0.6

# Close matches only earn part of their field weight
CLOSE_MATCH_DISCOUNT: Final[float] = 0.7

# Substrings that mark a top-level column of a flat row as a line-item column
LINE_ITEM_HINTS: Final[tuple[str, ...]] = (
    "line",
    "sku",
    "qty",
    "price",
    "total",
    "amount",
)

# ============================================================================
# Dataset Limits
# ============================================================================

MAX_ROWS: Final[int] = int(os.getenv("MAX_ROWS", "200"))

# Penalty applied to the data score when rows had to be dropped
DATA_SCORE_ERROR_PENALTY: Final[int] = 10

DEFAULT_PREVIEW_LIMIT: Final[int] = 20

# ============================================================================
# Scoring
# ============================================================================

SCORE_WEIGHTS: Final[dict[str, float]] = {
    "data": 0.25,
    "coverage": 0.35,
    "rules": 0.30,
    "posture": 0.10,
}

# Points per positive questionnaire answer
POSTURE_POINTS: Final[dict[str, int]] = {
    "webhooks": 40,
    "sandbox_env": 40,
    "retries": 20,
}

HIGH_READINESS_THRESHOLD: Final[int] = 80
MEDIUM_READINESS_THRESHOLD: Final[int] = 60

DEFAULT_COUNTRY: Final[str] = "Not specified"
DEFAULT_ERP: Final[str] = "Not specified"

# ============================================================================
# Rule Codes
# ============================================================================

class RuleCode(str, Enum):
    """Identifiers of the rule checks, in execution order."""
    TOTALS_BALANCE = "TOTALS_BALANCE"
    LINE_MATH = "LINE_MATH"
    DATE_ISO = "DATE_ISO"
    CURRENCY_ALLOWED = "CURRENCY_ALLOWED"
    TRN_PRESENT = "TRN_PRESENT"


# ============================================================================
# API Configuration
# ============================================================================

API_HOST: Final[str] = os.getenv("API_HOST", "0.0.0.0")
API_PORT: Final[int] = int(os.getenv("API_PORT", "8000"))
MAX_UPLOAD_SIZE_MB: Final[int] = int(os.getenv("MAX_UPLOAD_SIZE_MB", "5"))

# ============================================================================
# Logging Configuration
# ============================================================================

LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO")

def setup_logging() -> logging.Logger:
    """Configure and return the application logger."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("invoice_readiness")


logger = setup_logging()
