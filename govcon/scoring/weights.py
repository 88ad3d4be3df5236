"""Fixed factor weights for the overall match score."""

from decimal import Decimal

NAICS_WEIGHT = Decimal("0.20")
CAPABILITY_WEIGHT = Decimal("0.20")
PAST_PERFORMANCE_WEIGHT = Decimal("0.15")
GEOGRAPHIC_WEIGHT = Decimal("0.10")
CERTIFICATION_WEIGHT = Decimal("0.15")
CLEARANCE_WEIGHT = Decimal("0.10")
CONTRACT_SIZE_WEIGHT = Decimal("0.10")

# Factor name -> weight, in the order factors are reported
WEIGHTS = {
    "naics": NAICS_WEIGHT,
    "capability": CAPABILITY_WEIGHT,
    "past_performance": PAST_PERFORMANCE_WEIGHT,
    "geographic": GEOGRAPHIC_WEIGHT,
    "certification": CERTIFICATION_WEIGHT,
    "clearance": CLEARANCE_WEIGHT,
    "contract_size": CONTRACT_SIZE_WEIGHT,
}

# Placeholder until real competition data exists
COMPETITION_FACTOR = Decimal("0.8")
INCUMBENT_FACTOR = Decimal("0.7")

if sum(WEIGHTS.values()) != Decimal("1.00"):
    raise ValueError(f"Scoring weights must sum to 1.00, got {sum(WEIGHTS.values())}")
