"""Database seeder: sample notices with attachments for local development."""
import argparse
import asyncio
import io
import random
import time
from datetime import datetime, timedelta

from fastapi import UploadFile

from notice_api.config import settings
from notice_api.database import Base, async_session, master_engine
from notice_api.models import Notice
from notice_api.services.file_storage_service import FileStorageService

AUTHORS = ["admin", "facilities", "hr", "it-ops", "student-council", "library"]
TOPICS = ["maintenance", "holiday schedule", "network outage", "exam period",
          "fire drill", "new policy", "cafeteria menu", "parking"]


async def seed(small: bool = False, attachments: bool = True):
    num_notices = 50 if small else 2000
    storage = FileStorageService(settings.FILE_STORAGE_LOCATION)

    print(f"Seeding: {num_notices} notices into {settings.MASTER_DATABASE_URL}")
    start = time.perf_counter()

    async with master_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    total_files = 0
    async with async_session() as session:
        batch_size = 500
        for batch_start in range(0, num_notices, batch_size):
            batch_end = min(batch_start + batch_size, num_notices)
            for i in range(batch_start, batch_end):
                topic = random.choice(TOPICS)
                created = datetime.now() - timedelta(days=random.randint(0, 365))
                notice = Notice(
                    title=f"Notice {i}: {topic}",
                    content=f"Details about {topic}. " * 10,
                    start_date=created,
                    end_date=created + timedelta(days=random.randint(1, 30)),
                    created_at=created,
                    view_count=random.randint(0, 500),
                    author=random.choice(AUTHORS),
                    is_deleted=random.random() < 0.05,  # 5% soft-deleted
                    attachments=[],
                )
                session.add(notice)
                if attachments and random.random() < 0.3:
                    upload = UploadFile(
                        file=io.BytesIO(f"Attachment for notice {i}\n".encode()),
                        filename=f"notice-{i}.txt",
                    )
                    await storage.process_files(session, [upload], notice)
                    total_files += 1

            await session.flush()
            print(f"  Batch {batch_start}-{batch_end}: notices created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Notices: {num_notices}")
    print(f"  Attachments: {total_files}")


def main():
    parser = argparse.ArgumentParser(description="Seed the notice board database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (50 notices)")
    parser.add_argument("--no-files", action="store_true", help="Skip writing attachments")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small, attachments=not args.no_files))


if __name__ == "__main__":
    main()
