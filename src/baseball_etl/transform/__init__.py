"""Record transformers: raw source files -> canonical headered CSV."""

from .base import RecordTransformer
from .constants import ParkFactorsTransformer, WobaConstantsTransformer
from .ejections import EjectionsTransformer
from .gamelog import GameLogTransformer
from .lookup import (
    CsvTeamLeagueLookup,
    DatabaseParkMapping,
    ParkAssignment,
    ParkMapping,
    StaticParkMapping,
    StaticTeamLeagueLookup,
    TeamLeagueLookup,
    TeamParkMapping,
)
from .negro_leagues import NegroLeaguesGameInfoTransformer
from .plays import NEGRO_LEAGUES_NULL_TOKENS, PlaysTransformer

__all__ = [
    "CsvTeamLeagueLookup",
    "DatabaseParkMapping",
    "EjectionsTransformer",
    "GameLogTransformer",
    "NEGRO_LEAGUES_NULL_TOKENS",
    "NegroLeaguesGameInfoTransformer",
    "ParkAssignment",
    "ParkFactorsTransformer",
    "ParkMapping",
    "PlaysTransformer",
    "RecordTransformer",
    "StaticParkMapping",
    "StaticTeamLeagueLookup",
    "TeamLeagueLookup",
    "TeamParkMapping",
    "WobaConstantsTransformer",
]
