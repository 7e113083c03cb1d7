"""OEE (Overall Equipment Effectiveness) calculation."""

# Fixed quality factor: no scrap is modelled
QUALITY_RATE = 0.98

# Computed OEE never reads as a perfect 100
OEE_CEILING = 99.0

MS_PER_HOUR = 3_600_000.0


def calculate_oee(
    production_count: int,
    target_count: int,
    uptime_ms: float,
    total_time_ms: float,
) -> float:
    """Return OEE as a percentage in [0, 99].

    availability = min(uptime / total, 1)
    performance  = min(count / (target per hour * elapsed hours), 1)
    quality      = 0.98
    """
    if target_count <= 0 or total_time_ms <= 0:
        return 0.0

    availability = min(uptime_ms / total_time_ms, 1.0)
    expected = target_count * (total_time_ms / MS_PER_HOUR)
    performance = min(production_count / expected, 1.0)

    oee = availability * performance * QUALITY_RATE * 100.0
    return min(OEE_CEILING, max(0.0, oee))
