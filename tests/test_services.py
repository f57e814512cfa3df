"""
Tests for services.py - platform rules and matching orchestration.
"""

import pytest

from gradjobs import services, storage
from gradjobs.auth import Passport, decode_token, verify_password
from gradjobs.database import Message
from gradjobs.env import Config
from gradjobs.errors import AuthError, ConflictError, NotFoundError, ValidationError


@pytest.fixture
def no_email_config(db_path):
    return Config(db_path=db_path, secret_key="k")


class TestAccounts:
    """Test registration and login."""

    def test_register_hashes_password(self, db_session, no_email_config):
        user = services.register_user(
            db_session,
            {"username": "alice", "password": "pw123", "email": "alice@example.com", "graduate": True},
            no_email_config,
        )

        assert user.graduate is True
        assert user.password_hash != "pw123"
        assert verify_password("pw123", user.password_hash)

    def test_register_duplicate_username(self, db_session, no_email_config, make_user):
        make_user("alice")
        with pytest.raises(ConflictError, match="already exists"):
            services.register_user(
                db_session, {"username": "alice", "password": "x", "email": "a@b.io"}, no_email_config
            )

    def test_register_invalid_payload(self, db_session, no_email_config):
        with pytest.raises(ValidationError) as exc:
            services.register_user(db_session, {"username": "alice"}, no_email_config)
        assert exc.value.status_code == 400
        assert len(exc.value.errors) >= 2

    def test_register_ignores_admin_flag(self, db_session, no_email_config):
        user = services.register_user(
            db_session,
            {"username": "mallory", "password": "pw", "email": "m@example.com", "admin": True, "employer": True},
            no_email_config,
        )

        assert user.admin is False
        assert user.employer is True

    def test_create_admin(self, db_session, make_user):
        make_user("taken")
        admin = services.create_admin(db_session, {"username": "root", "password": "pw", "email": "root@example.com"})

        assert admin.admin is True
        assert verify_password("pw", admin.password_hash)
        with pytest.raises(ConflictError):
            services.create_admin(db_session, {"username": "taken", "password": "pw", "email": "t@example.com"})

    def test_login_returns_token_with_passport(self, db_session, no_email_config, make_user):
        user = make_user("boss", password="pw", employer=True)

        token = services.login(db_session, {"username": "boss", "password": "pw"}, no_email_config)

        assert decode_token(token, "k") == Passport(id=user.id, employer=True)

    def test_login_wrong_password(self, db_session, no_email_config, make_user):
        make_user("boss", password="pw")
        with pytest.raises(AuthError):
            services.login(db_session, {"username": "boss", "password": "nope"}, no_email_config)

    def test_login_unknown_user(self, db_session, no_email_config):
        with pytest.raises(AuthError):
            services.login(db_session, {"username": "ghost", "password": "pw"}, no_email_config)


class TestJobsAndApplications:
    """Test job posting and application rules."""

    def test_post_job_unknown_role(self, db_session):
        with pytest.raises(NotFoundError):
            services.post_job(db_session, {"title": "dev", "yoe": 1, "role_id": 5})

    def test_apply_twice(self, db_session, make_user, reference_data):
        grad = make_user("grad", graduate=True)
        job = storage.create_job(db_session, "dev", 1.0, reference_data["backend"].id)
        payload = {"graduate_id": grad.id, "job_id": job.id}

        services.apply_to_job(db_session, payload)
        with pytest.raises(ConflictError):
            services.apply_to_job(db_session, payload)

    def test_apply_to_closed_job(self, db_session, make_user, reference_data):
        grad = make_user("grad", graduate=True)
        job = storage.create_job(db_session, "dev", 1.0, reference_data["backend"].id, is_recruiting=False)

        with pytest.raises(ValidationError, match="not found"):
            services.apply_to_job(db_session, {"graduate_id": grad.id, "job_id": job.id})

    def test_get_missing_application(self, db_session):
        with pytest.raises(NotFoundError):
            services.get_application(db_session, 1, 1)

    def test_set_recruiting_requires_bool(self, db_session):
        with pytest.raises(ValidationError):
            services.set_recruiting(db_session, {"id": 1, "is_recruiting": "no"})


class TestSocial:
    """Test friendship and messaging rules."""

    def test_duplicate_friendship_in_reverse(self, db_session, make_user):
        a, b = make_user("a"), make_user("b")
        services.add_friend(db_session, {"from": a.id, "to": b.id})

        with pytest.raises(ConflictError):
            services.add_friend(db_session, {"from": b.id, "to": a.id})

    def test_friendship_with_unknown_user(self, db_session, make_user):
        a = make_user("a")
        with pytest.raises(NotFoundError):
            services.add_friend(db_session, {"from": a.id, "to": 999})

    def test_message_to_unknown_user(self, db_session, make_user):
        a = make_user("a")
        with pytest.raises(NotFoundError):
            services.send_message(db_session, {"sender_id": a.id, "receiver_id": 999, "message": "hi"})

    def test_message_to_self_allowed(self, db_session, make_user):
        a = make_user("a")
        message = services.send_message(db_session, {"sender_id": a.id, "receiver_id": a.id, "message": "note"})
        assert message.id is not None

    def test_last_message_per_conversation(self):
        messages = [
            Message(id=1, sender_id=1, receiver_id=2, message="a"),
            Message(id=2, sender_id=3, receiver_id=1, message="b"),
            Message(id=3, sender_id=2, receiver_id=1, message="c"),
            Message(id=4, sender_id=1, receiver_id=4, message="d"),
        ]

        latest = services.last_message_per_conversation(messages)

        assert [m.id for m in latest] == [4, 3, 2]

    def test_last_message_empty_inbox(self):
        assert services.last_message_per_conversation([]) == []


class TestCVs:
    """Test CV submission."""

    def test_submit_cv_with_skills(self, db_session, make_user, reference_data):
        grad = make_user("grad", graduate=True)
        skill_ids = [s.id for s in reference_data["skills"][:2]]

        cv = services.submit_cv(db_session, {
            "gpa": 3.0, "yoe": 1, "graduate_id": grad.id,
            "job_role_id": reference_data["backend"].id, "skill_ids": skill_ids,
        })

        assert sorted(s.id for s in cv.skills) == sorted(skill_ids)

    def test_submit_cv_twice(self, db_session, make_user, reference_data):
        grad = make_user("grad", graduate=True)
        payload = {"gpa": 3.0, "yoe": 1, "graduate_id": grad.id, "job_role_id": reference_data["backend"].id}

        services.submit_cv(db_session, payload)
        with pytest.raises(ConflictError):
            services.submit_cv(db_session, payload)

    def test_submit_cv_for_employer(self, db_session, make_user, reference_data):
        boss = make_user("boss", employer=True)
        with pytest.raises(ValidationError):
            services.submit_cv(db_session, {
                "gpa": 3.0, "yoe": 1, "graduate_id": boss.id, "job_role_id": reference_data["backend"].id,
            })

    def test_submit_cv_unknown_skill(self, db_session, make_user, reference_data):
        grad = make_user("grad", graduate=True)
        with pytest.raises(NotFoundError, match="999"):
            services.submit_cv(db_session, {
                "gpa": 3.0, "yoe": 1, "graduate_id": grad.id,
                "job_role_id": reference_data["backend"].id, "skill_ids": [999],
            })


class TestMatching:
    """Test matching against stored data."""

    @pytest.fixture
    def world(self, db_session, make_user, reference_data):
        backend, data = reference_data["backend"].id, reference_data["data"].id
        python, sql, go, excel = reference_data["skills"]

        alice = make_user("alice", graduate=True)
        services.submit_cv(db_session, {
            "gpa": 3.0, "yoe": 1, "graduate_id": alice.id, "job_role_id": backend,
            "skill_ids": [python.id, sql.id],
        })

        # 5 + 15 + 3 = 23: eligible
        api_job = storage.create_job(db_session, "api developer", 1.0, backend)
        storage.add_job_skill(db_session, api_job, python)
        # 5 + 0 + 6 = 11: not eligible
        bi_job = storage.create_job(db_session, "bi analyst", 1.0, data)
        storage.add_job_skill(db_session, bi_job, sql)
        storage.add_job_skill(db_session, bi_job, python)
        # eligible on paper but closed
        closed = storage.create_job(db_session, "closed backend", 1.0, backend)
        storage.set_job_recruiting(db_session, closed.id, False)

        bob = make_user("bob", graduate=True)
        services.submit_cv(db_session, {
            "gpa": 2.0, "yoe": 0, "graduate_id": bob.id, "job_role_id": data,
            "skill_ids": [python.id, sql.id, go.id, excel.id],
        })
        carol = make_user("carol", graduate=True)
        services.submit_cv(db_session, {
            "gpa": 2.0, "yoe": 0, "graduate_id": carol.id, "job_role_id": backend,
        })
        return {"alice": alice, "bob": bob, "carol": carol, "api_job": api_job}

    def test_match_jobs(self, db_session, world):
        matches = services.match_jobs(db_session, world["alice"].id)

        assert [job.title for job, _ in matches] == ["api developer"]
        assert matches[0][1].total == pytest.approx(23.0)

    def test_match_peers(self, db_session, world):
        # bob shares two skills with alice: 6 points, rejected
        # carol has alice's role: 10 points, admitted
        matches = services.match_peers(db_session, world["alice"].id)

        assert [cv.graduate_id for cv, _ in matches] == [world["carol"].id]

    def test_match_without_cv(self, db_session, make_user):
        nobody = make_user("nobody", graduate=True)
        with pytest.raises(NotFoundError):
            services.match_jobs(db_session, nobody.id)

    def test_resolve_target_id(self):
        passport = Passport(id=7, graduate=True)
        assert services.resolve_target_id(passport, None) == 7
        assert services.resolve_target_id(passport, 3) == 3
