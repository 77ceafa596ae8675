"""Exception hierarchy for the balancing pipeline.

Only InputError is fatal to a caller. The other errors are raised inside a
single stage and caught at that stage's call site, where they are converted
into an anomaly entry plus a degraded-but-explained result.
"""


class AtlasError(Exception):
    """Base class for all balancing errors."""


class InputError(AtlasError):
    """The player snapshot or configuration cannot be balanced at all.

    Raised for an empty player list, zero total capacity, duplicate player
    ids, or an invalid configuration value. No partial result is produced.
    """


class WeightResolutionError(AtlasError):
    """A player's rank data is malformed (e.g. an unknown rank name)."""

    def __init__(self, message: str, player_id: str | None = None, rank: str | None = None):
        super().__init__(message)
        self.player_id = player_id
        self.rank = rank


class EvidenceAnalysisError(AtlasError):
    """The optional evidence/adaptive weighting sub-call failed."""


class TournamentNotFoundError(AtlasError):
    """The repository has no players registered for a tournament."""

    def __init__(self, tournament_id: str):
        super().__init__(f"Tournament not found: {tournament_id}")
        self.tournament_id = tournament_id
