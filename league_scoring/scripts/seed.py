"""
Seed script: a demo season with one league, three teams, rosters,
retention config and episode 1 questions, then a full ledger rebuild.
Run with: python -m league_scoring.scripts.seed
"""
import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from league_scoring.core.database import AsyncSessionLocal, engine, Base
from league_scoring.models.models import (
    Season, Episode, Castaway, League, LeagueSeason, Team, QuestionType,
)
from league_scoring.services.questions import create_question
from league_scoring.services.recalculation import recalculate_all_episode_points
from league_scoring.services.retention import update_retention_config
from league_scoring.services.roster import open_interval

SEASON_NUMBER = 50
EPISODE_COUNT = 13
RETENTION_POINTS_PER_CASTAWAY = 1

CASTAWAYS = [
    "Aubry", "Cirie", "Coach", "Colby", "Genevieve", "Joe",
    "Kyle", "Ozzy", "Rizo", "Savannah", "Tiffany", "Christian",
]

TEAMS = [
    {"owner_id": "owner-1", "name": "Blindside Brigade"},
    {"owner_id": "owner-2", "name": "Idol Hunters"},
    {"owner_id": "owner-3", "name": "Jury Management"},
]

QUESTIONS = [
    {"text": "Who wins individual immunity?", "type": QuestionType.FILL_IN_THE_BLANK, "point_value": 2},
    {"text": "Which tribe goes to tribal council?", "type": QuestionType.MULTIPLE_CHOICE,
     "options": ["Cila", "Kalo", "Vatu"], "point_value": 1},
    {"text": "Does an idol get played?", "type": QuestionType.MULTIPLE_CHOICE,
     "options": ["Yes", "No"], "is_wager": True, "min_wager": 1, "max_wager": 5},
]


async def seed():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        result = await db.execute(select(Season).where(Season.season_number == SEASON_NUMBER))
        if result.scalar_one_or_none():
            print(f"  Season {SEASON_NUMBER} already exists, skipping.")
            return

        season = Season(season_number=SEASON_NUMBER, name=f"Season {SEASON_NUMBER}", active_episode=1)
        db.add(season)
        await db.flush()

        first_air = datetime.now(timezone.utc) + timedelta(days=2)
        for number in range(1, EPISODE_COUNT + 1):
            db.add(Episode(
                season_id=season.id,
                episode_number=number,
                title=f"Episode {number}",
                air_date=first_air + timedelta(weeks=number - 1),
            ))

        castaways = [Castaway(season_id=season.id, name=name) for name in CASTAWAYS]
        db.add_all(castaways)

        league = League(name="Demo League", slug="demo-league")
        db.add(league)
        await db.flush()

        league_season = LeagueSeason(league_id=league.id, season_id=season.id)
        db.add(league_season)
        await db.flush()

        teams = [Team(league_season_id=league_season.id, **t) for t in TEAMS]
        db.add_all(teams)
        await db.flush()
        print(f"  Created {len(teams)} teams in league '{league.name}'.")

        # Four castaways per team, snake order
        for index, castaway in enumerate(castaways):
            team = teams[index % len(teams)]
            await open_interval(db, team.id, castaway.id, start_episode=1)

        await update_retention_config(db, league_season.id, [
            {"episode_number": n, "points_per_castaway": RETENTION_POINTS_PER_CASTAWAY}
            for n in range(1, EPISODE_COUNT + 1)
        ])

        for question in QUESTIONS:
            await create_question(db, league_season.id, {"episode_number": 1, **question})
        print(f"  Created {len(QUESTIONS)} questions for episode 1.")

        summary = await recalculate_all_episode_points(db, league_season.id)
        print(f"  Recalculated {summary['teams_recalculated']} teams.")

        await db.commit()

    print("\nSeed complete!")


if __name__ == "__main__":
    print("Seeding League Scoring Engine...\n")
    asyncio.run(seed())
