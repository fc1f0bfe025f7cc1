"""Historical baseball data ETL: Retrosheet, Negro Leagues and FanGraphs into PostgreSQL."""

__version__ = "0.1.0"
