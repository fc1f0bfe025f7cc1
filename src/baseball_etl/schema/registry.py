"""Declarative descriptors for every table the pipeline writes.

The game-log column list lives here once and is shared by the game-log
transformer (header injection), the bulk loader (column validation) and the
merge statement (column list).
"""

from typing import Optional

from .models import FieldMetadata, TableSchema

# Retrosheet game log, in file order (161 positional fields)
GAME_LOG_COLUMNS: list[str] = [
    "date", "game_number", "day_of_week", "visiting_team", "visiting_team_league",
    "visiting_team_game_number", "home_team", "home_team_league", "home_team_game_number",
    "visiting_score", "home_score", "game_length_outs", "day_night", "completion_info",
    "forfeit_info", "protest_info", "park_id", "attendance", "game_time_minutes",
    "visiting_line_score", "home_line_score",
    "visiting_at_bats", "visiting_hits", "visiting_doubles", "visiting_triples",
    "visiting_homeruns", "visiting_rbi", "visiting_sac_hits", "visiting_sac_flies",
    "visiting_hit_by_pitch", "visiting_walks", "visiting_int_walks", "visiting_strikeouts",
    "visiting_stolen_bases", "visiting_caught_stealing", "visiting_gdp",
    "visiting_interference", "visiting_lob", "visiting_pitchers_used", "visiting_ind_er",
    "visiting_team_er", "visiting_wild_pitches", "visiting_balks", "visiting_putouts",
    "visiting_assists", "visiting_errors", "visiting_passed_balls", "visiting_double_plays",
    "visiting_triple_plays",
    "home_at_bats", "home_hits", "home_doubles", "home_triples", "home_homeruns",
    "home_rbi", "home_sac_hits", "home_sac_flies", "home_hit_by_pitch", "home_walks",
    "home_int_walks", "home_strikeouts", "home_stolen_bases", "home_caught_stealing",
    "home_gdp", "home_interference", "home_lob", "home_pitchers_used", "home_ind_er",
    "home_team_er", "home_wild_pitches", "home_balks", "home_putouts", "home_assists",
    "home_errors", "home_passed_balls", "home_double_plays", "home_triple_plays",
    "hp_ump_id", "hp_ump_name", "b1_ump_id", "b1_ump_name", "b2_ump_id", "b2_ump_name",
    "b3_ump_id", "b3_ump_name", "lf_ump_id", "lf_ump_name", "rf_ump_id", "rf_ump_name",
    "v_manager_id", "v_manager_name", "h_manager_id", "h_manager_name",
    "winning_pitcher_id", "winning_pitcher_name", "losing_pitcher_id", "losing_pitcher_name",
    "saving_pitcher_id", "saving_pitcher_name", "goahead_rbi_id", "goahead_rbi_name",
    "v_starting_pitcher_id", "v_starting_pitcher_name",
    "h_starting_pitcher_id", "h_starting_pitcher_name",
    *[f"v_player_{i}_{part}" for i in range(1, 10) for part in ("id", "name", "pos")],
    *[f"h_player_{i}_{part}" for i in range(1, 10) for part in ("id", "name", "pos")],
    "additional_info", "acquisition_info",
]

GAME_KEYS = ["date", "home_team", "game_number"]

_TEAM_STAT_SUFFIXES = (
    "at_bats", "hits", "doubles", "triples", "homeruns", "rbi", "sac_hits", "sac_flies",
    "hit_by_pitch", "walks", "int_walks", "strikeouts", "stolen_bases", "caught_stealing",
    "gdp", "interference", "lob", "pitchers_used", "ind_er", "team_er", "wild_pitches",
    "balks", "putouts", "assists", "errors", "passed_balls", "double_plays", "triple_plays",
)

_INT_COLUMNS = {
    "game_number", "visiting_team_game_number", "home_team_game_number",
    "visiting_score", "home_score", "game_length_outs", "attendance", "game_time_minutes",
}


def _game_column_type(name: str) -> str:
    """SQL type hint for a game-log column."""
    if name == "date":
        return "varchar(8)"
    if name in _INT_COLUMNS or name.endswith("_pos"):
        return "int"
    if name.startswith(("visiting_", "home_")) and name.split("_", 1)[1] in _TEAM_STAT_SUFFIXES:
        return "int"
    if name in ("visiting_team", "home_team", "day_of_week"):
        return "varchar(3)"
    if name.endswith("_league"):
        return "varchar(20)"
    if name == "park_id":
        return "varchar(5)"
    if name == "day_night":
        return "varchar(10)"
    if name.endswith("_id"):
        return "varchar(8)"
    return "text"


GAMES = TableSchema(
    name="games",
    description="Retrosheet game logs plus the game_type tag",
    fields=[
        FieldMetadata(
            name=name,
            type=_game_column_type(name),
            nullable=name not in GAME_KEYS,
            is_primary_key=name in GAME_KEYS,
        )
        for name in GAME_LOG_COLUMNS
    ]
    + [FieldMetadata(name="game_type", type="varchar(20)", nullable=False)],
    conflict_keys=GAME_KEYS,
)

# Columns the Negro Leagues gameinfo file can supply, in output order
NEGRO_LEAGUES_GAME_COLUMNS: list[str] = [
    "date", "game_number", "home_team", "visiting_team", "park_id",
    "day_night", "attendance", "game_time_minutes",
    "visiting_score", "home_score",
    "winning_pitcher_id", "losing_pitcher_id", "saving_pitcher_id",
    "hp_ump_id", "b1_ump_id", "b2_ump_id", "b3_ump_id", "lf_ump_id", "rf_ump_id",
    "game_type", "home_team_league", "visiting_team_league",
]

NEGRO_LEAGUES_GAMES = GAMES.subset(NEGRO_LEAGUES_GAME_COLUMNS)

# Plays ship with their own header; only the identity is declared.
PLAYS = TableSchema(
    name="plays",
    description="Retrosheet play-by-play events",
    conflict_keys=["gid", "pn"],
)

EJECTIONS = TableSchema(
    name="ejections",
    description="Retrosheet ejections",
    fields=[
        FieldMetadata(name="game_id", type="varchar(20)", nullable=False),
        FieldMetadata(name="date", type="varchar(10)", nullable=False),
        FieldMetadata(name="game_number", type="int"),
        FieldMetadata(name="ejectee_id", type="varchar(20)", nullable=False),
        FieldMetadata(name="ejectee_name", type="text", nullable=False),
        FieldMetadata(name="team", type="varchar(3)"),
        FieldMetadata(name="role", type="varchar(1)", nullable=False),
        FieldMetadata(name="umpire_id", type="varchar(20)"),
        FieldMetadata(name="umpire_name", type="text"),
        FieldMetadata(name="inning", type="int"),
        FieldMetadata(name="reason", type="text"),
    ],
    conflict_keys=["game_id", "ejectee_id"],
)

WOBA_CONSTANTS = TableSchema(
    name="woba_constants",
    description="FanGraphs Guts constants by season",
    fields=[
        FieldMetadata(name="season", type="int", nullable=False, is_primary_key=True),
        FieldMetadata(name="woba", type="decimal(5,3)"),
        FieldMetadata(name="woba_scale", type="decimal(5,3)"),
        FieldMetadata(name="w_bb", type="decimal(5,3)"),
        FieldMetadata(name="w_hbp", type="decimal(5,3)"),
        FieldMetadata(name="w_1b", type="decimal(5,3)"),
        FieldMetadata(name="w_2b", type="decimal(5,3)"),
        FieldMetadata(name="w_3b", type="decimal(5,3)"),
        FieldMetadata(name="w_hr", type="decimal(5,3)"),
        FieldMetadata(name="run_sb", type="decimal(5,3)"),
        FieldMetadata(name="run_cs", type="decimal(5,3)"),
        FieldMetadata(name="r_pa", type="decimal(5,3)"),
        FieldMetadata(name="r_w", type="decimal(5,2)"),
        FieldMetadata(name="c_fip", type="decimal(5,3)"),
    ],
    conflict_keys=["season"],
)

PARK_FACTORS = TableSchema(
    name="park_factors",
    description="FanGraphs park factors by park and season (100 = neutral)",
    fields=[
        FieldMetadata(name="park_id", type="varchar(10)", nullable=False, is_primary_key=True),
        FieldMetadata(name="season", type="int", nullable=False, is_primary_key=True),
        FieldMetadata(name="team_id", type="varchar(3)"),
        FieldMetadata(name="basic_5yr", type="int"),
        FieldMetadata(name="basic_3yr", type="int"),
        FieldMetadata(name="basic_1yr", type="int"),
        *[
            FieldMetadata(name=f"factor_{part}", type="int")
            for part in ("1b", "2b", "3b", "hr", "so", "bb", "gb", "fb", "ld", "iffb", "fip")
        ],
    ],
    conflict_keys=["park_id", "season"],
)

TABLE_SCHEMAS: dict[str, TableSchema] = {
    schema.name: schema for schema in (GAMES, PLAYS, EJECTIONS, WOBA_CONSTANTS, PARK_FACTORS)
}


def get_schema(name: str) -> Optional[TableSchema]:
    """Get a table descriptor by table name.

    Args:
        name: Destination table name (e.g., 'games')

    Returns:
        TableSchema if registered, None otherwise
    """
    return TABLE_SCHEMAS.get(name)


def list_schemas() -> list[str]:
    """List all registered table names."""
    return list(TABLE_SCHEMAS.keys())
