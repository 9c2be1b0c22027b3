"""
utils/constants.py

Purpose: Centralized static content

- User-facing messages
- Credit packages
- Default twin profile values

(Prevents hardcoding across the codebase)
"""

# ============================================================
# CREDIT PACKAGES
# ============================================================

# credits -> price in whole currency units
CREDIT_PACKAGES = {
    20: 15,
    75: 45,
    200: 99,
}

# ============================================================
# TWIN SYNTHESIS DEFAULTS
# ============================================================

# Substituted when the onboarding answers leave a field out
ANSWER_DEFAULTS = {
    "name": "Neural Candidate",
    "occupation": "Digital Intelligence",
    "personality": "Analytical and adaptive.",
    "voice_description": "Clear and resonant.",
}

DEFAULT_FIDELITY_SCORE = 98.4

# ============================================================
# RECEIPTS
# ============================================================

RECEIPT_MAX_LENGTH = 40
RECEIPT_PREFIX_ONBOARDING = "onboard"
RECEIPT_PREFIX_CREDITS = "credits"

# ============================================================
# MESSAGES
# ============================================================

MSG_ONBOARDING_ORDER_CREATED = "Assets secured. Payment order created."
MSG_INVALID_PLAN = "Invalid plan type selected"
MSG_INVALID_PACKAGE = "Invalid credit package. Please select a valid package."
MSG_ANSWERS_REQUIRED = "Neural answers are required"
MSG_EVENT_IGNORED = "Event ignored"
MSG_BILLING_NOT_FOUND = "Billing record not found"
