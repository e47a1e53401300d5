"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from election_api.models.ballot import Ballot
from election_api.models.candidate import Candidate
from election_api.models.geography import Constituency, District, PollingStation, Ward
from election_api.models.position import Position
from election_api.models.result import CandidateTally, Winner
from election_api.models.user import User
from election_api.models.voter import Voter

__all__ = [
    "Ballot",
    "Candidate",
    "CandidateTally",
    "Constituency",
    "District",
    "PollingStation",
    "Position",
    "User",
    "Voter",
    "Ward",
    "Winner",
]
