from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Text,
    UniqueConstraint, Index, Enum as SAEnum, JSON
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from league_scoring.core.database import Base
import enum


# --- Enums ---

class CastawayStatus(str, enum.Enum):
    # Informational only; point eligibility comes from membership intervals
    ACTIVE = "active"
    ELIMINATED = "eliminated"
    JURY = "jury"


class QuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    FILL_IN_THE_BLANK = "FILL_IN_THE_BLANK"


# --- Season side (owned by season management) ---

class Season(Base):
    __tablename__ = "seasons"

    id = Column(Integer, primary_key=True, index=True)
    season_number = Column(Integer, unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    active_episode = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    episodes = relationship("Episode", back_populates="season", cascade="all, delete-orphan", order_by="Episode.episode_number")
    castaways = relationship("Castaway", back_populates="season", cascade="all, delete-orphan")
    league_seasons = relationship("LeagueSeason", back_populates="season")


class Episode(Base):
    __tablename__ = "episodes"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    episode_number = Column(Integer, nullable=False)
    title = Column(String(200))
    air_date = Column(DateTime(timezone=True))  # Submission deadline

    season = relationship("Season", back_populates="episodes")

    __table_args__ = (
        UniqueConstraint("season_id", "episode_number", name="uq_episode_season_number"),
    )


class Castaway(Base):
    __tablename__ = "castaways"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    name = Column(String(100), nullable=False)
    status = Column(SAEnum(CastawayStatus), default=CastawayStatus.ACTIVE, nullable=False)

    season = relationship("Season", back_populates="castaways")

    __table_args__ = (
        UniqueConstraint("season_id", "name", name="uq_castaway_season_name"),
    )


# --- League side ---

class League(Base):
    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False)

    league_seasons = relationship("LeagueSeason", back_populates="league", cascade="all, delete-orphan")


class LeagueSeason(Base):
    __tablename__ = "league_seasons"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)

    league = relationship("League", back_populates="league_seasons")
    season = relationship("Season", back_populates="league_seasons")
    teams = relationship("Team", back_populates="league_season", cascade="all, delete-orphan")
    questions = relationship("LeagueQuestion", back_populates="league_season", cascade="all, delete-orphan")
    retention_configs = relationship("RetentionConfig", back_populates="league_season", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("league_id", "season_id", name="uq_league_season"),
    )


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    league_season_id = Column(Integer, ForeignKey("league_seasons.id"), nullable=False)
    owner_id = Column(String(100), nullable=False)  # External identity, not a FK
    name = Column(String(100), nullable=False)
    # Cache of the latest ledger running_total. Only recalculation writes it.
    total_points = Column(Integer, default=0, nullable=False)

    league_season = relationship("LeagueSeason", back_populates="teams")
    roster = relationship("TeamCastaway", back_populates="team", cascade="all, delete-orphan")
    answers = relationship("PlayerAnswer", back_populates="team", cascade="all, delete-orphan")
    episode_points = relationship(
        "TeamEpisodePoints", back_populates="team", cascade="all, delete-orphan",
        order_by="TeamEpisodePoints.episode_number",
    )

    __table_args__ = (
        UniqueConstraint("league_season_id", "owner_id", name="uq_team_owner"),
    )


class TeamCastaway(Base):
    """
    One roster-membership interval. end_episode = None means still on the team.
    Rows are closed, never deleted, so a dropped-then-redrafted castaway has
    several rows for the same (team, castaway) pair.
    """
    __tablename__ = "team_castaways"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    castaway_id = Column(Integer, ForeignKey("castaways.id"), nullable=False)
    start_episode = Column(Integer, nullable=False)
    end_episode = Column(Integer)

    team = relationship("Team", back_populates="roster")
    castaway = relationship("Castaway")

    __table_args__ = (
        Index("ix_team_castaway_pair", "team_id", "castaway_id"),
    )


class RetentionConfig(Base):
    __tablename__ = "retention_configs"

    id = Column(Integer, primary_key=True, index=True)
    league_season_id = Column(Integer, ForeignKey("league_seasons.id"), nullable=False)
    episode_number = Column(Integer, nullable=False)
    points_per_castaway = Column(Integer, default=0, nullable=False)

    league_season = relationship("LeagueSeason", back_populates="retention_configs")

    __table_args__ = (
        UniqueConstraint("league_season_id", "episode_number", name="uq_retention_episode"),
    )


class LeagueQuestion(Base):
    """Weekly prediction question. Immutable once is_scored flips to True."""
    __tablename__ = "league_questions"

    id = Column(Integer, primary_key=True, index=True)
    league_season_id = Column(Integer, ForeignKey("league_seasons.id"), nullable=False)
    episode_number = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    type = Column(SAEnum(QuestionType), nullable=False)
    options = Column(JSON)  # list[str] for multiple choice
    point_value = Column(Integer, default=1, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_wager = Column(Boolean, default=False, nullable=False)
    min_wager = Column(Integer)
    max_wager = Column(Integer)
    is_scored = Column(Boolean, default=False, nullable=False)
    correct_answer = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    league_season = relationship("LeagueSeason", back_populates="questions")
    answers = relationship("PlayerAnswer", back_populates="question", cascade="all, delete-orphan")


class PlayerAnswer(Base):
    __tablename__ = "player_answers"

    id = Column(Integer, primary_key=True, index=True)
    league_question_id = Column(Integer, ForeignKey("league_questions.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    answer = Column(Text, nullable=False)
    wager_amount = Column(Integer)
    points_earned = Column(Integer)  # Null until the question is scored
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    question = relationship("LeagueQuestion", back_populates="answers")
    team = relationship("Team", back_populates="answers")

    __table_args__ = (
        UniqueConstraint("league_question_id", "team_id", name="uq_answer_question_team"),
    )


class TeamEpisodePoints(Base):
    """
    The points ledger. One row per (team, episode):
    total_episode_points = question_points + retention_points and
    running_total is the prefix sum of total_episode_points.
    """
    __tablename__ = "team_episode_points"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    episode_number = Column(Integer, nullable=False)
    question_points = Column(Integer, default=0, nullable=False)
    retention_points = Column(Integer, default=0, nullable=False)
    total_episode_points = Column(Integer, default=0, nullable=False)
    running_total = Column(Integer, default=0, nullable=False)

    team = relationship("Team", back_populates="episode_points")

    __table_args__ = (
        UniqueConstraint("team_id", "episode_number", name="uq_team_episode"),
    )
