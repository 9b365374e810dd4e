"""CLI script to seed demo users, a topic and a group into the backend DB.
Usage: python scripts/seed_demo.py
"""
import sys
import pathlib
# Ensure `backend/` is on sys.path so package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from alumni_network import schemas, services
from alumni_network.config import settings
from alumni_network.database import build_engine, create_db_and_tables
from alumni_network.errors import ConflictError

DEMO_USERS = [
    {'id': 'demo-ada', 'username': 'ada', 'name': 'Ada', 'bio': 'Class of 2015'},
    {'id': 'demo-linus', 'username': 'linus', 'name': 'Linus', 'fun_fact': 'Owns 3 kayaks'},
]


def main():
    """Create the demo records, skipping users that already exist.

    Prints the created ids so they can be used with `issue_token.py`.
    """
    engine = build_engine(settings)
    create_db_and_tables(engine)
    with Session(engine) as session:
        users = services.UserService(session)
        for data in DEMO_USERS:
            try:
                u = users.create_user(schemas.UserCreate(**data), caller_id=data['id'])
                print(f'Created user {u.id}')
            except ConflictError:
                print(f"User {data['id']} already exists, skipping")
        topic = services.TopicService(session).create(
            schemas.TopicCreate(name='Robotics', description='Robots, drones and tinkering'),
            creator_id='demo-ada',
        )
        services.MembershipService(session).join_topic(topic.id, 'demo-linus')
        print(f'Created topic {topic.id} with members {[u.id for u in topic.users]}')
        group = services.GroupService(session).create_group(
            schemas.GroupCreate(name='Class of 2015', is_private=True),
            creator_id='demo-ada',
        )
        print(f'Created private group {group.id}')

if __name__ == '__main__':
    main()
