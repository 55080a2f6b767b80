PRIZE_MULTIPLIER = 190  # percent of the stake paid back on a win


def prize(deposit: int, multiplier: int = PRIZE_MULTIPLIER) -> int:
    """Payout for a won wager, truncated to whole wei."""
    return deposit * multiplier // 100
