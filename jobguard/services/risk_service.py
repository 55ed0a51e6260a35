"""
Scam risk scoring for job postings.

Pure and deterministic: no I/O, no clock. Each rule in RULES is evaluated
independently, triggered rules emit a detected flag and add their score,
and the total is clamped to 0-100.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from jobguard.utils.preprocessing import email_domain, normalize_text
from jobguard.utils.risk_levels import calculate_risk_level

FREE_EMAIL_PROVIDERS = ("gmail.com", "yahoo.com", "hotmail.com", "outlook.com")
VAGUE_DESCRIPTION_LENGTH = 100
MAX_PROBABILITY = 100


@dataclass(frozen=True)
class ScoringInput:
    description: str = ""  # lower-cased
    company_email: Optional[str] = None
    has_company_website: bool = False

    @property
    def has_description(self) -> bool:
        return bool(self.description)


@dataclass(frozen=True)
class ScoringRule:
    category: str
    severity: str
    score: int
    description: str
    matches: Callable[[ScoringInput], bool]


@dataclass
class DetectedFlag:
    type: str
    severity: str
    description: str
    detected: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "description": self.description,
            "detected": self.detected,
        }


@dataclass
class ScoringResult:
    flags: List[DetectedFlag]
    raw_score: int
    scam_probability: int
    risk_level: str
    details: Dict[str, Any] = field(default_factory=dict)


def _text_contains_any(*phrases: str) -> Callable[[ScoringInput], bool]:
    def check(data: ScoringInput) -> bool:
        return data.has_description and any(phrase in data.description for phrase in phrases)
    return check


def _is_vague(data: ScoringInput) -> bool:
    return data.has_description and len(data.description) < VAGUE_DESCRIPTION_LENGTH


def _uses_free_email(data: ScoringInput) -> bool:
    return email_domain(data.company_email) in FREE_EMAIL_PROVIDERS


def _no_website(data: ScoringInput) -> bool:
    return not data.has_company_website


RULES: Tuple[ScoringRule, ...] = (
    ScoringRule(
        category="unrealistic_salary",
        severity="high",
        score=25,
        description="Job posting contains unrealistic salary claims",
        matches=_text_contains_any("earn $", "make money fast", "unlimited income", "get rich"),
    ),
    ScoringRule(
        category="upfront_payment",
        severity="high",
        score=30,
        description="Job requires upfront payment or fees",
        matches=_text_contains_any("pay", "fee", "deposit", "investment required"),
    ),
    ScoringRule(
        category="pressure_tactics",
        severity="medium",
        score=15,
        description="Job posting uses pressure or urgency language",
        matches=_text_contains_any("act now", "limited time", "urgent", "immediate start"),
    ),
    ScoringRule(
        category="vague_description",
        severity="medium",
        score=10,
        description="Job description is unusually vague or short",
        matches=_is_vague,
    ),
    ScoringRule(
        category="personal_info_request",
        severity="high",
        score=30,
        description="Job requests sensitive personal or financial information",
        matches=_text_contains_any("social security", "ssn", "bank account", "credit card"),
    ),
    ScoringRule(
        category="suspicious_email",
        severity="medium",
        score=15,
        description="Company uses a free email provider instead of a corporate domain",
        matches=_uses_free_email,
    ),
    ScoringRule(
        category="no_company_presence",
        severity="medium",
        score=10,
        description="No company website provided",
        matches=_no_website,
    ),
)


def build_scoring_input(
    description: Optional[str],
    company_email: Optional[str] = None,
    company_website: Optional[str] = None,
) -> ScoringInput:
    return ScoringInput(
        description=normalize_text(description),
        company_email=company_email,
        has_company_website=bool(company_website),
    )


def evaluate_rules(
    data: ScoringInput,
    rules: Tuple[ScoringRule, ...] = RULES,
) -> Tuple[List[DetectedFlag], int]:
    """Return (flags in rule order, unclamped score sum)."""
    flags: List[DetectedFlag] = []
    total = 0
    for rule in rules:
        if rule.matches(data):
            flags.append(DetectedFlag(rule.category, rule.severity, rule.description))
            total += rule.score
    return flags, total


def _clamp(value: int, low: int = 0, high: int = MAX_PROBABILITY) -> int:
    return max(low, min(value, high))


def build_analysis_details(data: ScoringInput, flags: List[DetectedFlag], raw_score: int) -> Dict[str, Any]:
    """Per-aspect breakdown stored alongside the flags."""
    remaining = _clamp(MAX_PROBABILITY - raw_score)
    is_free_provider = _uses_free_email(data)

    return {
        "company_legitimacy": {
            "score": remaining,
            "details": f"Analysis based on {len(flags)} warning flags",
        },
        "website_analysis": {
            "exists": data.has_company_website,
            "details": "Website provided" if data.has_company_website else "No website provided",
        },
        "email_analysis": {
            "is_valid_domain": bool(data.company_email) and not is_free_provider,
            "is_free_provider": is_free_provider,
            "details": "Email domain analyzed" if data.company_email else "No company email provided",
        },
        "content_analysis": {
            "clarity": remaining if data.has_description else 0,
            "authenticity": remaining,
            "details": "Job description analyzed for scam patterns",
        },
    }


def score_job_posting(
    description: Optional[str],
    company_email: Optional[str] = None,
    company_website: Optional[str] = None,
) -> ScoringResult:
    """Score a job posting and derive its risk level."""
    data = build_scoring_input(description, company_email, company_website)
    flags, raw_score = evaluate_rules(data)
    probability = _clamp(raw_score)

    return ScoringResult(
        flags=flags,
        raw_score=raw_score,
        scam_probability=probability,
        risk_level=calculate_risk_level(flags, probability),
        details=build_analysis_details(data, flags, raw_score),
    )
