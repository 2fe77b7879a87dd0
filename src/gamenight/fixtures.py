"""Round-robin fixture generation using the circle method."""

from gamenight.models import MIN_TEAMS, Match, MatchStage, MatchStatus, Team

BYE = None


def generate_round_robin(teams: list[Team]) -> list[Match]:
    """Generate the full round-robin schedule using the circle method.

    The first team stays anchored while every other position rotates by one
    each round. With an odd number of teams a bye entry is added and the
    team paired with it sits the round out.

    For 4 teams (A, B, C, D):
        Round 1: A-D (slot 1), B-C (slot 2)
        Round 2: A-C (slot 3), D-B (slot 4)
        Round 3: A-B (slot 5), C-D (slot 6)

    Slots are ``round * half + index + 1`` where ``half`` counts the bye, so
    odd team counts leave gaps in the slot sequence.

    Args:
        teams: Ordered list of teams; the order determines home/away

    Returns:
        List of scheduled round-robin matches (empty for fewer than 2 teams)
    """
    if len(teams) < MIN_TEAMS:
        return []

    rotating = [team.id for team in teams]
    if len(rotating) % 2 == 1:
        rotating.append(BYE)

    rounds = len(rotating) - 1
    half = len(rotating) // 2
    matches = []

    for round_idx in range(rounds):
        for i in range(half):
            home = rotating[i]
            away = rotating[len(rotating) - 1 - i]
            if home is BYE or away is BYE:
                continue

            matches.append(
                Match(
                    id=f"rr-{home}-{away}-{round_idx}-{i}",
                    stage=MatchStage.ROUND_ROBIN,
                    slot=round_idx * half + i + 1,
                    home_id=home,
                    away_id=away,
                    status=MatchStatus.SCHEDULED,
                )
            )

        # Keep the anchor, move the last entry to the front of the rest
        rotating = [rotating[0], rotating[-1]] + rotating[1:-1]

    return matches
