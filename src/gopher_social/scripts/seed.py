"""Populate a development database with random users, posts and comments.

Usage::

    python -m gopher_social.scripts.seed --users 100 --posts 200 --comments 500
"""
from __future__ import annotations

import argparse
import logging
import random
import sys
from dataclasses import dataclass

from sqlalchemy.orm import Session

from gopher_social.core.security import hash_password
from gopher_social.db.session import SessionLocal
from gopher_social.init_db import seed_roles
from gopher_social.models import Comment, Post, User
from gopher_social.repositories import Storage

logger = logging.getLogger(__name__)

SEED_PASSWORD = "password123"

USERNAMES = (
    "skywander", "techguru", "coffeeaddict", "mountainhiker", "booklover",
    "codewizard", "nightowl", "digitalnomad", "pixelartist", "urbanexplorer",
    "stormchaser", "gamerzone", "cosmicdreamer", "dataminer", "quietreader",
    "cryptonerd", "fastrunner", "cloudsurfer", "logicmaster", "forestwalker",
)

TITLES = (
    "The Future of Remote Work",
    "Why Morning Routines Matter",
    "Lessons I Learned from Failure",
    "Exploring the Power of Minimalism",
    "My Journey into Coding",
    "The Art of Saying No",
    "Building Better Habits in 30 Days",
    "The Rise of AI in Everyday Life",
    "How I Overcame Procrastination",
    "The Value of Deep Work",
)

CONTENTS = (
    "Just wrapped up a super productive day of coding!",
    "Started learning Go today and it feels amazing!",
    "Small wins stack up into big victories.",
    "Sometimes rest is the most productive thing you can do.",
    "Books and quiet time make a perfect evening.",
    "Debugging teaches you patience like nothing else.",
    "Every failure is just data for the next attempt.",
    "Slow progress is still progress.",
)

TAGS = (
    "coding", "golang", "backend", "api", "database", "sql",
    "productivity", "habits", "travel", "books", "learning", "design",
    "docker", "devops", "cloud", "health", "fitness", "ai",
)

COMMENTS = (
    "This is awesome, thanks for sharing!",
    "I totally agree with you.",
    "Interesting take, never thought of it that way.",
    "Really useful insight, thanks!",
    "I'm definitely saving this.",
    "Nicely explained!",
)


@dataclass(frozen=True)
class SeedCounts:
    users: int = 100
    posts: int = 200
    comments: int = 500


def seed(session: Session, counts: SeedCounts, rng: random.Random | None = None) -> None:
    """Insert ``counts`` worth of random, already active, data."""
    rng = rng or random.Random()
    storage = Storage(session)
    seed_roles(session)

    # Every seeded user shares one hash.
    password = hash_password(SEED_PASSWORD)
    user_ids: list[int] = []
    for i in range(counts.users):
        name = f"{rng.choice(USERNAMES)}{i}"
        user = User(username=name, email=f"{name}@example.com", password=password, is_active=True)
        user_ids.append(storage.users.create(user).id)

    post_ids: list[int] = []
    for i in range(counts.posts if user_ids else 0):
        post = Post(
            title=f"{rng.choice(TITLES)} {i}",
            content=rng.choice(CONTENTS),
            tags=[rng.choice(TAGS)],
            user_id=rng.choice(user_ids),
        )
        post_ids.append(storage.posts.create(post).id)

    for i in range(counts.comments if post_ids else 0):
        storage.comments.create(
            Comment(
                post_id=rng.choice(post_ids),
                user_id=rng.choice(user_ids),
                content=f"{rng.choice(COMMENTS)} {i}",
            )
        )

    logger.info(
        "seeding complete users=%s posts=%s comments=%s",
        len(user_ids),
        len(post_ids),
        counts.comments if post_ids else 0,
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--users", type=int, default=SeedCounts.users)
    parser.add_argument("--posts", type=int, default=SeedCounts.posts)
    parser.add_argument("--comments", type=int, default=SeedCounts.comments)
    parser.add_argument("--seed", type=int, default=None, help="random seed for reproducible data")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    counts = SeedCounts(users=args.users, posts=args.posts, comments=args.comments)
    with SessionLocal() as session:
        seed(session, counts, random.Random(args.seed))
    return 0


if __name__ == "__main__":
    sys.exit(main())
