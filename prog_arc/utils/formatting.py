"""Text helpers shared by ledger descriptions and notification embeds."""


def ordinal(n: int) -> str:
    """Return 1st, 2nd, 3rd, 4th, ... 11th, 12th, 13th, 21st"""
    if 10 <= n % 100 <= 20:
        suffix = 'th'
    else:
        suffix = {1: 'st', 2: 'nd', 3: 'rd'}.get(n % 10, 'th')
    return f"{n}{suffix}"


def award_description(session_number: int, rank: int) -> str:
    return f"Session {session_number} - {ordinal(rank)} place award (VP declined)"
