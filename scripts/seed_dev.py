#!/usr/bin/env python
"""Seed development database with fixture forum data.

Seeds two users, a public topic with a matching post, and a saved search,
so the notifier has something to report on the next run.

Constraints:
- Refuses to run in staging or prod (AGORA_ENV check)
- Idempotent: skips seeding if the fixture user already exists
- Never runs automatically (manual invocation only)

Usage:
    cd python && DATABASE_URL=... python ../scripts/seed_dev.py
"""

import os
import sys


def main():
    # 1. Environment check (hard fail in staging/prod)
    agora_env = os.getenv("AGORA_ENV", "local")
    if agora_env not in ("local", "test"):
        print(f"ERROR: seed_dev.py refuses to run in AGORA_ENV={agora_env}")
        sys.exit(1)

    # 2. Check DATABASE_URL
    if not os.getenv("DATABASE_URL"):
        print("ERROR: DATABASE_URL environment variable must be set")
        sys.exit(1)

    from sqlalchemy import select

    from agora.db.models import Post, SavedSearch, Topic, User
    from agora.db.session import get_session_factory, transaction

    db = get_session_factory()()
    try:
        if db.scalar(select(User).where(User.username == "dev_reader")) is not None:
            print("Seed data already present, nothing to do")
            return

        # 3. Fixture rows
        with transaction(db):
            reader = User(username="dev_reader", trust_level=1)
            writer = User(username="dev_writer", trust_level=2)
            db.add_all([reader, writer])
            db.flush()

            topic = Topic(title="Weekly deals thread", user_id=writer.id)
            db.add(topic)
            db.flush()

            db.add(
                Post(
                    topic_id=topic.id,
                    user_id=writer.id,
                    post_number=1,
                    raw="Check out these coupon codes for cool things.",
                )
            )
            db.add(SavedSearch(user_id=reader.id, position=0, term="coupon"))
            db.add(SavedSearch(user_id=reader.id, position=1, term="discount"))

        print(f"Seeded dev_reader={reader.id} dev_writer={writer.id} topic={topic.id}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
