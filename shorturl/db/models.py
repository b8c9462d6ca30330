"""
Database Models for URL Shortener Service

This module defines the SQLModel tables used by the durable URL store:
- ShortURL: alias -> original URL mapping (table "urls")
- ShortURLStats: per-alias access statistics (table "url_stats")

Design Decisions:
- url_stats is a 1:1 side table keyed by the same alias, so the redirect
  lookup never touches statistics columns
- last_ips and referrers are newline-joined strings; header values and IPs
  cannot contain newlines, URLs may contain commas
"""

from typing import List

from sqlalchemy import Column, ForeignKey, Integer, String, Text
from sqlmodel import Field, SQLModel

LIST_DELIMITER = "\n"


def join_values(values: List[str]) -> str:
    return LIST_DELIMITER.join(values)


def split_values(data: str) -> List[str]:
    # "" is the empty list, not [""]
    if not data:
        return []
    return data.split(LIST_DELIMITER)


class ShortURL(SQLModel, table=True):
    """
    Main table storing URL shortening mappings.

    Fields:
    - short_url: The alias (primary key)
    - original_url: The long URL the alias redirects to
    """
    __tablename__ = "urls"

    short_url: str = Field(sa_column=Column(String, primary_key=True))
    original_url: str = Field(sa_column=Column(Text, nullable=False))


class ShortURLStats(SQLModel, table=True):
    """
    Statistics side table, one row per row in "urls".

    Rows are created and deleted in the same transaction as their mapping.
    """
    __tablename__ = "url_stats"

    short_url: str = Field(
        sa_column=Column(String, ForeignKey("urls.short_url"), primary_key=True)
    )
    count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    last_ips: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    referrers: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    last_geo_location: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
