# src/gopher_social/models/types.py
"""Column types shared by the ORM models."""

from sqlalchemy import JSON, BigInteger, Integer, Text
from sqlalchemy.dialects.postgresql import ARRAY

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntegerPK = BigInteger().with_variant(Integer(), "sqlite")

# Native text[] on Postgres; JSON-encoded list elsewhere.
TagList = ARRAY(Text()).with_variant(JSON(), "sqlite")
