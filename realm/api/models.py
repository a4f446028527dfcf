"""
SQLAlchemy models for saved games.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text

from .database import Base


class Game(Base):
    __tablename__ = "games"

    id = Column(String(36), primary_key=True)  # uuid
    name = Column(String(128), nullable=False)  # user-defined game name
    setup_id = Column(String(64), nullable=True)  # scenario the game was created from
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    status = Column(String(32), nullable=False, default="active")  # active | archived
    turn = Column(Integer, nullable=False, default=1)  # mirrored from game_state for listings
    game_state = Column(Text, nullable=False)  # JSON string of full game state
