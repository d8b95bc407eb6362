"""Deposit rules exercised through the HTTP API and the service layer"""

from datetime import datetime

import pytest

from app.config import settings
from app.models.assignment import AssignmentRecord
from app.models.deposit import Deposit
from app.models.user import User
from app.schemas.deposit import AssignmentInsertRequest
from app.services import deposit_service
from app.services.activity_service import get_activities_for_user

PREFIX = "/api/deposit"
INITIAL = settings.INITIAL_DEPOSIT
LACK = settings.LACK_PENALTY
MISSING = settings.MISSING_PENALTY


def insert(client, headers, assignment, lack=(), x=()):
    return client.post(
        f"{PREFIX}/assignment/insert",
        json={"assignment": assignment, "lackList": list(lack), "xList": list(x)},
        headers=headers,
    )


def update(client, headers, user_id, assignment, check, passed, body_user=None):
    return client.post(
        f"{PREFIX}/{user_id}/assignment/update",
        json={
            "userId": body_user or user_id,
            "assignment": assignment,
            "check": check,
            "pass": passed,
        },
        headers=headers,
    )


def deposit_of(client, headers, user_id):
    response = client.get(f"{PREFIX}/deposit/{user_id}", headers=headers)
    assert response.status_code == 200
    return response.json()


def record_of(db, user_id, assignment) -> AssignmentRecord:
    db.expire_all()
    return (
        db.query(AssignmentRecord)
        .filter_by(user_id=user_id, assignment=assignment)
        .one()
    )


class TestCheckDeposit:
    def test_member_sees_own_deposit(self, client, user_headers):
        assert deposit_of(client, user_headers, "u1") == {
            "userId": "u1",
            "deposit": INITIAL,
            "defend": 0,
        }

    def test_member_cannot_see_other_deposit(self, client, user_headers):
        response = client.get(f"{PREFIX}/deposit/u2", headers=user_headers)

        assert response.status_code == 403

    def test_admin_sees_any_deposit(self, client, admin_headers):
        assert deposit_of(client, admin_headers, "u2")["deposit"] == INITIAL

    def test_missing_deposit_is_404(self, client, db, admin_headers):
        db.add(User(id="nodeposit", name="No Deposit"))
        db.commit()

        response = client.get(f"{PREFIX}/deposit/nodeposit", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Deposit record not found"


class TestInsertAssignment:
    def test_applies_lack_and_missing_penalties(self, client, admin_headers):
        response = insert(client, admin_headers, "A1", lack=["u1"], x=["u2"])

        assert response.status_code == 200
        assert response.json() == {
            "message": "Assignment information inserted successfully",
            "assignment": "A1",
            "recorded": 4,
        }
        assert deposit_of(client, admin_headers, "u1")["deposit"] == INITIAL - LACK
        assert deposit_of(client, admin_headers, "u2")["deposit"] == INITIAL - MISSING
        assert deposit_of(client, admin_headers, "u3")["deposit"] == INITIAL

    def test_records_status_for_every_member(self, client, db, admin_headers):
        insert(client, admin_headers, "A1", lack=["u1"], x=["u2"])

        lack = record_of(db, "u1", "A1")
        missing = record_of(db, "u2", "A1")
        passed = record_of(db, "u3", "A1")
        assert (lack.check, lack.passed) == (True, False)
        assert (missing.check, missing.passed) == (False, False)
        assert (passed.check, passed.passed) == (True, True)

    def test_duplicate_assignment_conflicts(self, client, admin_headers):
        insert(client, admin_headers, "A1")

        response = insert(client, admin_headers, "A1", lack=["u1"])

        assert response.status_code == 409
        assert deposit_of(client, admin_headers, "u1")["deposit"] == INITIAL

    def test_unknown_user_rejected_without_side_effects(self, client, db, admin_headers):
        response = insert(client, admin_headers, "A1", lack=["u1", "ghost"])

        assert response.status_code == 404
        assert "ghost" in response.json()["detail"]
        db.expire_all()
        assert db.query(AssignmentRecord).count() == 0

    def test_user_in_both_lists_is_invalid(self, client, admin_headers):
        response = insert(client, admin_headers, "A1", lack=["u1"], x=["u1"])

        assert response.status_code == 422

    def test_blank_assignment_is_invalid(self, client, admin_headers):
        response = insert(client, admin_headers, "   ")

        assert response.status_code == 422

    def test_deposit_never_goes_negative(self, client, admin_headers):
        for i in range(INITIAL // MISSING + 1):
            insert(client, admin_headers, f"A{i}", x=["u1"])

        assert deposit_of(client, admin_headers, "u1")["deposit"] == 0

    def test_concurrent_duplicate_is_a_conflict(self, db, members, monkeypatch):
        # Another transaction registered A1 after the existence check ran
        db.add(AssignmentRecord(user_id="u2", assignment="A1", check=True, passed=True))
        db.commit()
        monkeypatch.setattr(deposit_service, "assignment_exists", lambda db, name: False)
        admin = db.query(User).filter_by(id="admin").one()
        request = AssignmentInsertRequest(assignment="A1", lack_list=["u1"], x_list=[])

        with pytest.raises(deposit_service.AssignmentExistsError):
            deposit_service.insert_assignment(db, request, admin)

        db.rollback()
        assert db.query(AssignmentRecord).count() == 1

    def test_concurrent_duplicate_returns_409(self, client, db, admin_headers, monkeypatch):
        db.add(AssignmentRecord(user_id="u2", assignment="A1", check=True, passed=True))
        db.commit()
        monkeypatch.setattr(deposit_service, "assignment_exists", lambda db, name: False)

        response = insert(client, admin_headers, "A1", lack=["u1"])

        assert response.status_code == 409
        assert deposit_of(client, admin_headers, "u1")["deposit"] == INITIAL


class TestUpdateAssignment:
    def test_passing_restores_deposit(self, client, admin_headers):
        insert(client, admin_headers, "A1", lack=["u1"])

        response = update(client, admin_headers, "u1", "A1", True, True)

        assert response.status_code == 200
        assert response.json() == {
            "userId": "u1",
            "assignment": "A1",
            "check": True,
            "pass": True,
            "defended": False,
            "deposit": INITIAL,
        }

    def test_unchecking_applies_missing_penalty(self, client, admin_headers):
        insert(client, admin_headers, "A1")

        response = update(client, admin_headers, "u3", "A1", False, False)

        assert response.json()["deposit"] == INITIAL - MISSING

    def test_body_user_must_match_path(self, client, admin_headers):
        insert(client, admin_headers, "A1")

        response = update(client, admin_headers, "u1", "A1", True, True, body_user="u2")

        assert response.status_code == 400

    def test_unknown_assignment_is_404(self, client, admin_headers):
        response = update(client, admin_headers, "u1", "nope", True, True)

        assert response.status_code == 404

    def test_unknown_user_is_404(self, client, admin_headers):
        response = update(client, admin_headers, "ghost", "A1", True, True)

        assert response.status_code == 404
        assert response.json()["detail"] == "Deposit record not found"

    def test_pass_without_check_is_invalid(self, client, admin_headers):
        insert(client, admin_headers, "A1")

        response = update(client, admin_headers, "u1", "A1", False, True)

        assert response.status_code == 422

    def test_defended_record_refunds_token_when_passed(self, client, db, admin_headers):
        insert(client, admin_headers, "A1", lack=["u1"])
        client.post(f"{PREFIX}/u1/defend/add", headers=admin_headers)
        client.post(f"{PREFIX}/deposit/u1/defend/use", headers=admin_headers)

        response = update(client, admin_headers, "u1", "A1", True, True)

        assert response.json()["defended"] is False
        assert deposit_of(client, admin_headers, "u1") == {
            "userId": "u1",
            "deposit": INITIAL,
            "defend": 1,
        }

    def test_defended_record_stays_defended_while_penalized(self, client, admin_headers):
        insert(client, admin_headers, "A1", lack=["u1"])
        client.post(f"{PREFIX}/u1/defend/add", headers=admin_headers)
        client.post(f"{PREFIX}/deposit/u1/defend/use", headers=admin_headers)

        response = update(client, admin_headers, "u1", "A1", False, False)

        assert response.json()["defended"] is True
        assert response.json()["deposit"] == INITIAL


class TestDefendTokens:
    def test_add_and_delete(self, client, admin_headers):
        added = client.post(f"{PREFIX}/u1/defend/add", headers=admin_headers)
        assert added.status_code == 200
        assert added.json() == {
            "userId": "u1",
            "defend": 1,
            "message": "Defend added successfully",
        }

        deleted = client.post(f"{PREFIX}/u1/defend/delete", headers=admin_headers)
        assert deleted.status_code == 200
        assert deleted.json()["defend"] == 0

    def test_delete_without_tokens_fails(self, client, admin_headers):
        response = client.post(f"{PREFIX}/u1/defend/delete", headers=admin_headers)

        assert response.status_code == 400

    def test_add_for_unknown_user_is_404(self, client, admin_headers):
        response = client.post(f"{PREFIX}/ghost/defend/add", headers=admin_headers)

        assert response.status_code == 404

    def test_use_without_tokens_fails(self, client, admin_headers, user_headers):
        insert(client, admin_headers, "A1", lack=["u1"])

        response = client.post(f"{PREFIX}/deposit/u1/defend/use", headers=user_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "No defense tokens left"

    def test_use_without_deduction_fails(self, client, admin_headers, user_headers):
        client.post(f"{PREFIX}/u1/defend/add", headers=admin_headers)

        response = client.post(f"{PREFIX}/deposit/u1/defend/use", headers=user_headers)

        assert response.status_code == 400
        assert deposit_of(client, user_headers, "u1")["defend"] == 1

    def test_use_cancels_deduction(self, client, db, admin_headers, user_headers):
        insert(client, admin_headers, "A1", lack=["u1"])
        client.post(f"{PREFIX}/u1/defend/add", headers=admin_headers)

        response = client.post(f"{PREFIX}/deposit/u1/defend/use", headers=user_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Defend used successfully"}
        assert deposit_of(client, user_headers, "u1") == {
            "userId": "u1",
            "deposit": INITIAL,
            "defend": 0,
        }
        assert record_of(db, "u1", "A1").defended is True

    def test_use_targets_most_recent_deduction(self, client, db, admin_headers, user_headers):
        insert(client, admin_headers, "A1", lack=["u1"])
        insert(client, admin_headers, "A2", x=["u1"])
        client.post(f"{PREFIX}/u1/defend/add", headers=admin_headers)

        client.post(f"{PREFIX}/deposit/u1/defend/use", headers=user_headers)

        assert record_of(db, "u1", "A2").defended is True
        assert record_of(db, "u1", "A1").defended is False
        assert deposit_of(client, user_headers, "u1")["deposit"] == INITIAL - LACK

    def test_member_cannot_use_other_token(self, client, admin_headers, user_headers):
        client.post(f"{PREFIX}/u2/defend/add", headers=admin_headers)

        response = client.post(f"{PREFIX}/deposit/u2/defend/use", headers=user_headers)

        assert response.status_code == 403


class TestReloadAndActivity:
    def test_reload_all_repairs_drifted_balances(self, db, members):
        deposit = db.query(Deposit).filter_by(user_id="u1").one()
        deposit.amount = 123
        db.commit()

        changed = deposit_service.reload_all_deposits(db)
        db.commit()

        assert changed == 1
        db.expire_all()
        assert db.query(Deposit).filter_by(user_id="u1").one().amount == INITIAL
        actions = [a.action for a in get_activities_for_user(db, "u1")]
        assert actions == ["deposit_reloaded"]

    def test_reload_unknown_user_raises(self, db, members):
        with pytest.raises(deposit_service.DepositNotFoundError):
            deposit_service.reload_deposit(db, "ghost")

    def test_create_member_rejects_duplicates(self, db, members):
        with pytest.raises(deposit_service.MemberExistsError):
            deposit_service.create_member(db, "u1", "Again")

    def test_mutations_are_logged(self, client, db, admin_headers):
        insert(client, admin_headers, "A1", lack=["u1"])
        client.post(f"{PREFIX}/u1/defend/add", headers=admin_headers)
        client.post(f"{PREFIX}/deposit/u1/defend/use", headers=admin_headers)
        update(client, admin_headers, "u1", "A1", True, True)

        db.expire_all()
        activities = get_activities_for_user(db, "u1")
        assert [a.action for a in activities] == [
            "assignment_inserted",
            "defend_added",
            "defend_used",
            "assignment_updated",
        ]
        assert all(a.actor_id == "admin" for a in activities)
        assert activities[-1].extra_data["defend_refunded"] is True

    def test_insert_service_returns_records(self, db, members):
        admin = db.query(User).filter_by(id="admin").one()
        request = AssignmentInsertRequest(assignment="A1", lack_list=["u1"], x_list=[])

        records = deposit_service.insert_assignment(db, request, admin)

        assert sorted(r.user_id for r in records) == members
        assert db.query(Deposit).filter_by(user_id="u1").one().amount == INITIAL - LACK


class TestPenalties:
    @pytest.mark.parametrize(
        "check,passed,defended,expected",
        [
            (True, True, False, 0),
            (True, False, False, LACK),
            (False, False, False, MISSING),
            (True, False, True, 0),
            (False, False, True, 0),
        ],
    )
    def test_calculate_penalty(self, check, passed, defended, expected):
        record = AssignmentRecord(check=check, passed=passed, defended=defended)

        assert deposit_service.calculate_penalty(record) == expected


class TestDeletedMembers:
    @pytest.fixture
    def deleted_u1(self, db, members):
        user = db.query(User).filter_by(id="u1").one()
        user.deleted_at = datetime.now()
        db.commit()

    @pytest.mark.parametrize("path", ["/u1/defend/add", "/u1/defend/delete"])
    def test_defend_changes_are_404(self, client, admin_headers, deleted_u1, path):
        response = client.post(PREFIX + path, headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Deposit record not found"

    def test_update_is_404(self, client, admin_headers, deleted_u1):
        response = update(client, admin_headers, "u1", "A1", True, True)

        assert response.status_code == 404

    def test_admin_cannot_read_deleted_deposit(self, client, admin_headers, deleted_u1):
        response = client.get(f"{PREFIX}/deposit/u1", headers=admin_headers)

        assert response.status_code == 404

    def test_insert_skips_deleted_member(self, client, db, admin_headers, deleted_u1):
        response = insert(client, admin_headers, "A1", x=["u2"])

        assert response.json()["recorded"] == 3
        db.expire_all()
        assert db.query(AssignmentRecord).filter_by(user_id="u1").count() == 0

    def test_deleted_member_left_untouched(self, db, deleted_u1):
        admin = db.query(User).filter_by(id="admin").one()

        with pytest.raises(deposit_service.DepositNotFoundError):
            deposit_service.add_defend(db, "u1", admin)

        db.rollback()
        db.expire_all()
        assert db.query(Deposit).filter_by(user_id="u1").one().defend_count == 0
