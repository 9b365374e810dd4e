import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from alumni_network import models, repositories, services
from alumni_network.errors import ConflictError, NotFoundError


@pytest.fixture
def seeded(session):
    """Three users, one topic and one group, created directly in the store."""
    for uid in ('a', 'b', 'c'):
        session.add(models.User(id=uid, username=uid))
    topic = models.Topic(name='Robotics')
    group = models.Group(name='Class of 2020')
    session.add(topic)
    session.add(group)
    session.commit()
    return topic.id, group.id


def _edges(session, link, **where):
    stmt = select(link)
    for column, value in where.items():
        stmt = stmt.where(getattr(link, column) == value)
    return session.exec(stmt).all()


def test_join_twice_keeps_single_membership(session, seeded):
    topic_id, _ = seeded
    svc = services.MembershipService(session)
    svc.join_topic(topic_id, 'a')
    topic = svc.join_topic(topic_id, 'a')
    assert [u.id for u in topic.users] == ['a']
    assert len(_edges(session, models.TopicMember, topic_id=topic_id, user_id='a')) == 1


def test_member_set_never_holds_duplicates(session, seeded):
    topic_id, group_id = seeded
    svc = services.MembershipService(session)
    for uid in ('a', 'b', 'a', 'c', 'b', 'a'):
        svc.join_topic(topic_id, uid)
        svc.join_group(group_id, uid)
    topic = services.TopicService(session).get_topic(topic_id)
    group = services.GroupService(session).get_group(group_id, 'a')
    assert sorted(u.id for u in topic.users) == ['a', 'b', 'c']
    assert sorted(u.id for u in group.members) == ['a', 'b', 'c']


def test_join_unknown_target_or_user(session, seeded):
    topic_id, group_id = seeded
    svc = services.MembershipService(session)
    with pytest.raises(NotFoundError):
        svc.join_topic(999, 'a')
    with pytest.raises(NotFoundError):
        svc.join_topic(topic_id, 'nobody')
    with pytest.raises(NotFoundError):
        svc.join_group(group_id, 'nobody')


def test_link_table_rejects_duplicate_edges(session, seeded):
    topic_id, _ = seeded
    session.add(models.TopicMember(topic_id=topic_id, user_id='a'))
    session.commit()
    session.expunge_all()
    session.add(models.TopicMember(topic_id=topic_id, user_id='a'))
    with pytest.raises(IntegrityError):
        session.commit()


def test_concurrent_group_updates_one_wins(app, seeded):
    _, group_id = seeded
    engine = app.state.engine
    with Session(engine) as first, Session(engine) as second:
        read_first = repositories.GroupRepository(first).get(group_id)
        read_second = repositories.GroupRepository(second).get(group_id)
        assert read_first.version == read_second.version == 1

        updated = repositories.GroupRepository(first).update(group_id, {'name': 'A'}, read_first.version)
        assert updated.version == 2
        with pytest.raises(ConflictError):
            repositories.GroupRepository(second).update(group_id, {'name': 'B'}, read_second.version)

    with Session(engine) as check:
        assert repositories.GroupRepository(check).get(group_id).name == 'A'


def test_racing_joins_store_one_edge(app, seeded):
    topic_id, _ = seeded
    engine = app.state.engine
    with Session(engine) as first, Session(engine) as second:
        topic_first = first.get(models.Topic, topic_id)
        topic_second = second.get(models.Topic, topic_id)
        # both sessions see the empty member set before either writes
        assert topic_first.users == [] and topic_second.users == []

        won = repositories.MembershipRepository(first).add_member(topic_first, 'users', first.get(models.User, 'a'))
        lost = repositories.MembershipRepository(second).add_member(topic_second, 'users', second.get(models.User, 'a'))
        assert (won, lost) == (True, False)
        assert [u.id for u in topic_second.users] == ['a']

    with Session(engine) as check:
        assert len(_edges(check, models.TopicMember, topic_id=topic_id, user_id='a')) == 1
