import asyncio
import os
from datetime import datetime, timedelta

import teamformer.database as database
from teamformer.models import Hackathon, Participant, Registration


async def main() -> None:
    """Create tables and a hackathon whose registration closes in a few seconds."""

    participant_count = int(os.getenv("SEED_PARTICIPANTS", "5"))
    closes_in = int(os.getenv("SEED_DEADLINE_SECONDS", "30"))

    await database.init_models()
    async with database.SessionLocal() as session:
        hackathon = Hackathon(
            title="Demo Hackathon",
            registration_deadline=datetime.utcnow() + timedelta(seconds=closes_in),
            max_team_size=int(os.getenv("SEED_TEAM_SIZE", "2")),
            problem_statements=["Build a better bus timetable", "Make recycling fun"],
        )
        session.add(hackathon)
        stamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
        for index in range(participant_count):
            participant = Participant(
                name=f"Participant {index + 1}",
                email=f"participant{index + 1}.{stamp}@example.com",
                skills=["python"] if index % 2 else ["design"],
            )
            session.add(participant)
            session.add(Registration(hackathon=hackathon, participant=participant))
        await session.commit()
        print(f"Seeded hackathon {hackathon.id} closing in {closes_in}s with {participant_count} participants.")


if __name__ == "__main__":
    asyncio.run(main())
