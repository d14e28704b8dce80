# zone -> {mode family -> transit estimate}
DELIVERY_ESTIMATES = {
    "Within City": {"Surface": "2-3 days", "Air": "1-2 days"},
    "Within State": {"Surface": "3-4 days", "Air": "2-3 days"},
    "Within Region": {"Surface": "4-5 days", "Air": "2-3 days"},
    "Metro to Metro": {"Surface": "3-5 days", "Air": "2-3 days"},
    "Rest of India": {"Surface": "4-6 days", "Air": "3-4 days"},
    "Special Zone": {"Surface": "6-8 days", "Air": "4-5 days"},
    "North East & Special Areas": {"Surface": "6-8 days", "Air": "4-5 days"},
}

# modes that travel by air for estimation purposes
MODE_FAMILY = {
    "Surface": "Surface",
    "Standard": "Surface",
    "Air": "Air",
    "Express": "Air",
    "Premium": "Air",
}

DEFAULT_DELIVERY_ESTIMATE = "4-6 days"


def get_delivery_estimate(zone: str, mode: str) -> str:
    family = MODE_FAMILY.get(mode, "Surface")
    return DELIVERY_ESTIMATES.get(zone, {}).get(family, DEFAULT_DELIVERY_ESTIMATE)
