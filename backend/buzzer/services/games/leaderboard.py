from typing import Iterable, List, Optional

from buzzer.models import LeaderboardData, LeaderboardEntry, Player, now_ms


def calculate_leaderboard(players: Iterable[Player], session_id: str, timestamp: Optional[int] = None) -> LeaderboardData:
    """Rank players with standard competition ranking ("1224").

    Higher score first, ties broken by nickname. Tied players share the rank
    of the first of them and the next distinct score skips ahead, so two
    players on 50 are both 1st and a player on 30 is 3rd. ``is_tied`` marks
    every player whose score equals a neighbour's. The input is not modified.
    """
    ordered: List[Player] = sorted(players, key=lambda p: (-p.score, p.nickname))
    entries: List[LeaderboardEntry] = []
    rank = 1
    for index, player in enumerate(ordered):
        previous = ordered[index - 1] if index > 0 else None
        following = ordered[index + 1] if index + 1 < len(ordered) else None
        if previous is not None and player.score != previous.score:
            rank = index + 1
        is_tied = (
            (previous is not None and previous.score == player.score)
            or (following is not None and following.score == player.score)
        )
        entries.append(LeaderboardEntry(
            player_id=player.player_id,
            nickname=player.nickname,
            score=player.score,
            rank=rank,
            is_tied=is_tied,
        ))
    return LeaderboardData(
        entries=entries,
        total_players=len(ordered),
        timestamp=timestamp if timestamp is not None else now_ms(),
        session_id=session_id,
    )
