"""Tests for member_service: invites, role changes, removal, search."""

import pytest

from laneboard.errors import (
    AlreadyMember,
    Forbidden,
    LastOwner,
    MemberNotFound,
    NotAMember,
    UserNotFound,
    ValidationError,
)
from laneboard.extensions import db
from laneboard.models.project import ProjectMember
from laneboard.services import member_service

from conftest import make_user


def _role(project_id, user_id):
    db.session.expire_all()
    membership = member_service.get_membership(project_id, user_id)
    return membership.role if membership else None


class TestGuards:

    def test_require_membership(self, seed_data):
        membership = member_service.require_membership(
            seed_data["project_id"], seed_data["member_id"]
        )
        assert membership.role == "member"
        with pytest.raises(NotAMember):
            member_service.require_membership(seed_data["project_id"], seed_data["outsider_id"])

    def test_require_manager(self, seed_data):
        assert member_service.require_manager(
            seed_data["project_id"], seed_data["admin_id"]
        ).role == "admin"
        with pytest.raises(Forbidden):
            member_service.require_manager(seed_data["project_id"], seed_data["member_id"])

    def test_is_project_member(self, seed_data):
        assert member_service.is_project_member(seed_data["project_id"], seed_data["owner_id"])
        assert not member_service.is_project_member(
            seed_data["project_id"], seed_data["outsider_id"]
        )


class TestInviteMember:

    def test_owner_invites_by_email(self, seed_data):
        membership = member_service.invite_member(
            seed_data["project_id"], seed_data["owner_id"], "  Outsider@Example.com ",
        )
        db.session.commit()
        assert membership.user_id == seed_data["outsider_id"]
        assert membership.role == "member"
        assert membership.added_by_user_id == seed_data["owner_id"]

    def test_admin_can_invite_admin(self, seed_data):
        member_service.invite_member(
            seed_data["project_id"], seed_data["admin_id"], "outsider@example.com", "admin",
        )
        assert _role(seed_data["project_id"], seed_data["outsider_id"]) == "admin"

    def test_admin_cannot_invite_owner(self, seed_data):
        with pytest.raises(Forbidden, match="Admins cannot invite owners"):
            member_service.invite_member(
                seed_data["project_id"], seed_data["admin_id"], "outsider@example.com", "owner",
            )

    def test_member_cannot_invite(self, seed_data):
        with pytest.raises(Forbidden):
            member_service.invite_member(
                seed_data["project_id"], seed_data["member_id"], "outsider@example.com",
            )

    def test_unknown_email(self, seed_data):
        with pytest.raises(UserNotFound):
            member_service.invite_member(
                seed_data["project_id"], seed_data["owner_id"], "ghost@example.com",
            )

    def test_already_member(self, seed_data):
        with pytest.raises(AlreadyMember):
            member_service.invite_member(
                seed_data["project_id"], seed_data["owner_id"], "member@example.com",
            )

    def test_invalid_role(self, seed_data):
        with pytest.raises(ValidationError, match="Invalid role"):
            member_service.invite_member(
                seed_data["project_id"], seed_data["owner_id"], "outsider@example.com", "viewer",
            )


class TestUpdateMemberRole:

    def test_owner_promotes_member(self, seed_data):
        member_service.update_member_role(
            seed_data["project_id"], seed_data["owner_id"], seed_data["member_id"], "admin",
        )
        assert _role(seed_data["project_id"], seed_data["member_id"]) == "admin"

    def test_owner_can_add_second_owner_then_step_down(self, seed_data):
        member_service.update_member_role(
            seed_data["project_id"], seed_data["owner_id"], seed_data["admin_id"], "owner",
        )
        member_service.update_member_role(
            seed_data["project_id"], seed_data["owner_id"], seed_data["owner_id"], "member",
        )
        db.session.commit()
        assert _role(seed_data["project_id"], seed_data["owner_id"]) == "member"
        assert member_service.count_owners(seed_data["project_id"]) == 1

    def test_last_owner_cannot_be_demoted(self, seed_data):
        with pytest.raises(LastOwner):
            member_service.update_member_role(
                seed_data["project_id"], seed_data["owner_id"], seed_data["owner_id"], "admin",
            )

    def test_admin_cannot_modify_owner(self, seed_data):
        with pytest.raises(Forbidden, match="Admins cannot modify owners"):
            member_service.update_member_role(
                seed_data["project_id"], seed_data["admin_id"], seed_data["owner_id"], "member",
            )

    def test_admin_cannot_promote_to_owner(self, seed_data):
        with pytest.raises(Forbidden, match="Admins cannot promote"):
            member_service.update_member_role(
                seed_data["project_id"], seed_data["admin_id"], seed_data["member_id"], "owner",
            )

    def test_member_cannot_change_roles(self, seed_data):
        with pytest.raises(Forbidden):
            member_service.update_member_role(
                seed_data["project_id"], seed_data["member_id"], seed_data["admin_id"], "member",
            )

    def test_unknown_target(self, seed_data):
        with pytest.raises(MemberNotFound):
            member_service.update_member_role(
                seed_data["project_id"], seed_data["owner_id"], seed_data["outsider_id"], "admin",
            )


class TestRemoveMember:

    def test_owner_removes_member(self, seed_data):
        member_service.remove_member(
            seed_data["project_id"], seed_data["owner_id"], seed_data["member_id"],
        )
        db.session.commit()
        assert _role(seed_data["project_id"], seed_data["member_id"]) is None

    def test_admin_removes_member(self, seed_data):
        member_service.remove_member(
            seed_data["project_id"], seed_data["admin_id"], seed_data["member_id"],
        )
        assert _role(seed_data["project_id"], seed_data["member_id"]) is None

    def test_admin_cannot_remove_owner(self, seed_data):
        with pytest.raises(Forbidden, match="Admins cannot remove owners"):
            member_service.remove_member(
                seed_data["project_id"], seed_data["admin_id"], seed_data["owner_id"],
            )

    def test_last_owner_cannot_be_removed(self, seed_data):
        with pytest.raises(LastOwner):
            member_service.remove_member(
                seed_data["project_id"], seed_data["owner_id"], seed_data["owner_id"],
            )

    def test_member_cannot_remove(self, seed_data):
        with pytest.raises(Forbidden):
            member_service.remove_member(
                seed_data["project_id"], seed_data["member_id"], seed_data["admin_id"],
            )


class TestListMembers:

    def test_owners_first(self, seed_data):
        member_service.update_member_role(
            seed_data["project_id"], seed_data["owner_id"], seed_data["member_id"], "owner",
        )
        db.session.commit()
        roles = [m["role"] for m in member_service.list_members(seed_data["project_id"])]
        assert roles == ["owner", "owner", "admin"]

    def test_fields(self, seed_data):
        members = member_service.list_members(seed_data["project_id"])
        owner = members[0]
        assert owner == {
            "user_id": seed_data["owner_id"],
            "role": "owner",
            "email": "owner@example.com",
            "name": "Olive Owner",
        }


class TestSearchByEmail:

    def test_finds_non_members_by_prefix(self, seed_data):
        results = member_service.search_by_email(
            seed_data["project_id"], seed_data["owner_id"], "out",
        )
        assert [r["email"] for r in results] == ["outsider@example.com"]

    def test_excludes_existing_members(self, seed_data):
        results = member_service.search_by_email(
            seed_data["project_id"], seed_data["owner_id"], "mem",
        )
        assert results == []

    def test_short_query_returns_nothing(self, seed_data):
        assert member_service.search_by_email(
            seed_data["project_id"], seed_data["owner_id"], "o",
        ) == []

    def test_wildcards_are_literal(self, seed_data, db_session):
        make_user(db_session, "a_b@example.com")
        make_user(db_session, "axb@example.com")
        db_session.commit()
        results = member_service.search_by_email(
            seed_data["project_id"], seed_data["owner_id"], "a_",
        )
        assert [r["email"] for r in results] == ["a_b@example.com"]

    def test_results_capped(self, app, seed_data, db_session):
        for i in range(app.config["SEARCH_RESULT_LIMIT"] + 5):
            make_user(db_session, f"bulk{i:02d}@example.com")
        db_session.commit()
        results = member_service.search_by_email(
            seed_data["project_id"], seed_data["owner_id"], "bulk",
        )
        assert len(results) == app.config["SEARCH_RESULT_LIMIT"]

    def test_member_cannot_search(self, seed_data):
        with pytest.raises(Forbidden):
            member_service.search_by_email(
                seed_data["project_id"], seed_data["member_id"], "out",
            )

    def test_membership_rows_untouched_by_search(self, seed_data):
        member_service.search_by_email(seed_data["project_id"], seed_data["owner_id"], "out")
        assert ProjectMember.query.filter_by(project_id=seed_data["project_id"]).count() == 3
