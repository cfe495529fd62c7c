from datetime import datetime
from types import SimpleNamespace

from app.models.permission import Permission


def _provider_user(user):
    return SimpleNamespace(id=str(user.id), email=user.email)


def _share(client, owner, item, item_type, email, role="viewer"):
    return client.post(
        "/files/share",
        json={"itemId": str(item.id), "itemType": item_type, "email": email, "role": role},
        headers=owner.headers,
    )


class TestShare:
    def test_unregistered_then_registered_then_duplicate(self, client, alice, bob, make_file, supabase_mock):
        record = make_file(alice, "X")

        response = _share(client, alice, record, "file", bob.email)
        assert response.status_code == 404
        assert response.json() == {"error": "User with that email not found."}

        supabase_mock.auth.admin.list_users.return_value = [_provider_user(alice), _provider_user(bob)]
        response = _share(client, alice, record, "file", bob.email)
        assert response.status_code == 200
        assert response.json() == {"message": f"File shared successfully with {bob.email}."}

        response = _share(client, alice, record, "file", bob.email)
        assert response.status_code == 409

    def test_non_owner_is_forbidden(self, client, alice, bob, make_file, supabase_mock):
        record = make_file(bob, "bob.txt")
        supabase_mock.auth.admin.list_users.return_value = [_provider_user(alice)]

        response = _share(client, alice, record, "file", alice.email)

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden: You are not the owner of this file."}
        supabase_mock.auth.admin.list_users.assert_not_called()

    def test_share_folder(self, client, alice, bob, make_folder, supabase_mock, db_session):
        folder = make_folder(alice, "Team")
        supabase_mock.auth.admin.list_users.return_value = [_provider_user(bob)]

        response = _share(client, alice, folder, "folder", bob.email, role="editor")

        assert response.status_code == 200
        grant = db_session.query(Permission).one()
        assert (grant.user_id, grant.role, grant.folder_id, grant.file_id) == (
            bob.id, "editor", folder.id, None
        )

    def test_missing_fields(self, client, alice):
        response = client.post("/files/share", json={"email": "x@example.com"}, headers=alice.headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Item ID, type, email, and role are required."}

    def test_blank_role(self, client, alice, bob, make_file, supabase_mock):
        record = make_file(alice, "X")
        supabase_mock.auth.admin.list_users.return_value = [_provider_user(bob)]

        response = _share(client, alice, record, "file", bob.email, role="   ")

        assert response.status_code == 400
        assert response.json() == {"error": "role must be 1-50 characters."}

    def test_any_role_is_stored(self, client, alice, bob, make_file, supabase_mock, db_session):
        record = make_file(alice, "X")
        supabase_mock.auth.admin.list_users.return_value = [_provider_user(bob)]

        response = _share(client, alice, record, "file", bob.email, role="commenter")

        assert response.status_code == 200
        assert db_session.query(Permission).one().role == "commenter"

    def test_non_owner_is_forbidden_whatever_the_role(self, client, alice, bob, make_file, supabase_mock):
        record = make_file(bob, "bob.txt")
        supabase_mock.auth.admin.list_users.return_value = [_provider_user(alice)]

        response = _share(client, alice, record, "file", alice.email, role="commenter")

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden: You are not the owner of this file."}

    def test_non_owner_is_forbidden_whatever_the_type(self, client, alice, bob, make_file):
        record = make_file(bob, "bob.txt")

        response = _share(client, alice, record, "album", alice.email)

        assert response.status_code == 403

    def test_malformed_item_id(self, client, alice):
        response = client.post(
            "/files/share",
            json={"itemId": "nope", "itemType": "file", "email": "x@example.com", "role": "viewer"},
            headers=alice.headers,
        )
        assert response.status_code == 400
        assert "error" in response.json()

    def test_cannot_share_with_self(self, client, alice, make_file, supabase_mock):
        record = make_file(alice, "X")
        supabase_mock.auth.admin.list_users.return_value = [_provider_user(alice)]

        response = _share(client, alice, record, "file", alice.email)

        assert response.status_code == 400

    def test_email_match_is_exact(self, client, alice, bob, make_file, supabase_mock):
        record = make_file(alice, "X")
        supabase_mock.auth.admin.list_users.return_value = [_provider_user(bob)]

        response = _share(client, alice, record, "file", "BOB@example.com")

        assert response.status_code == 404

    def test_user_lookup_pages_through_provider(self, client, alice, bob, make_file, supabase_mock):
        record = make_file(alice, "X")
        filler = [SimpleNamespace(id=f"id-{n}", email=f"user{n}@example.com") for n in range(1000)]
        supabase_mock.auth.admin.list_users.side_effect = [filler, [_provider_user(bob)]]

        response = _share(client, alice, record, "file", bob.email)

        assert response.status_code == 200
        assert supabase_mock.auth.admin.list_users.call_count == 2
        assert supabase_mock.auth.admin.list_users.call_args.kwargs["page"] == 2

    def test_provider_failure(self, client, alice, bob, make_file, supabase_mock):
        record = make_file(alice, "X")
        supabase_mock.auth.admin.list_users.side_effect = RuntimeError("admin API down")

        response = _share(client, alice, record, "file", bob.email)

        assert response.status_code == 500


class TestSharedWithMe:
    def test_lists_files_then_folders_with_roles(self, client, alice, bob, make_file, make_folder, db_session):
        record = make_file(alice, "report.pdf", file_type="application/pdf")
        folder = make_folder(alice, "Team")
        gone = make_file(alice, "gone.txt", deleted_at=datetime(2024, 1, 1))
        db_session.add_all([
            Permission(user_id=bob.id, role="viewer", file_id=record.id),
            Permission(user_id=bob.id, role="editor", folder_id=folder.id),
            Permission(user_id=bob.id, role="viewer", file_id=gone.id),
        ])
        db_session.commit()

        response = client.get("/files/shared-with-me", headers=bob.headers)

        assert response.status_code == 200
        items = response.json()
        assert [(i["type"], i["name"], i["role"], i["file_type"]) for i in items] == [
            ("file", "report.pdf", "viewer", "application/pdf"),
            ("folder", "Team", "editor", "folder"),
        ]

    def test_nothing_shared(self, client, alice):
        assert client.get("/files/shared-with-me", headers=alice.headers).json() == []

    def test_recipient_can_browse_shared_folder(self, client, alice, bob, make_folder, make_file, db_session):
        team = make_folder(alice, "Team")
        nested = make_folder(alice, "Q1", parent=team)
        make_file(alice, "plan.txt", folder=nested)
        db_session.add(Permission(user_id=bob.id, role="viewer", folder_id=team.id))
        db_session.commit()

        response = client.get(
            "/files/contents", params={"folderId": str(nested.id)}, headers=bob.headers
        )

        assert response.status_code == 200
        assert [i["name"] for i in response.json()] == ["plan.txt"]

    def test_recipient_can_sign_shared_file(self, client, alice, bob, make_folder, make_file, db_session, bucket):
        team = make_folder(alice, "Team")
        record = make_file(alice, "plan.txt", folder=team)
        db_session.add(Permission(user_id=bob.id, role="viewer", folder_id=team.id))
        db_session.commit()

        response = client.post(
            "/files/signed-url", json={"path": record.storage_path}, headers=bob.headers
        )

        assert response.status_code == 200
        bucket.create_signed_url.assert_called_once_with(record.storage_path, 60)


class TestGrantManagement:
    def _grant(self, db_session, grantee, **target):
        grant = Permission(user_id=grantee.id, role="viewer", **target)
        db_session.add(grant)
        db_session.commit()
        db_session.refresh(grant)
        return grant

    def test_owner_lists_grants(self, client, alice, bob, make_file, db_session):
        record = make_file(alice, "X")
        grant = self._grant(db_session, bob, file_id=record.id)

        response = client.get(f"/files/file/{record.id}/permissions", headers=alice.headers)

        assert response.status_code == 200
        assert [(p["id"], p["user_id"], p["role"]) for p in response.json()] == [
            (str(grant.id), str(bob.id), "viewer")
        ]

    def test_non_owner_cannot_list_grants(self, client, alice, bob, make_file):
        record = make_file(alice, "X")
        response = client.get(f"/files/file/{record.id}/permissions", headers=bob.headers)
        assert response.status_code == 403

    def test_owner_revokes_grant(self, client, alice, bob, make_folder, db_session):
        folder = make_folder(alice, "Team")
        grant = self._grant(db_session, bob, folder_id=folder.id)

        response = client.delete(f"/files/share/{grant.id}", headers=alice.headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Permission revoked."}
        assert db_session.query(Permission).count() == 0
        assert client.get("/files/shared-with-me", headers=bob.headers).json() == []

    def test_grantee_cannot_revoke(self, client, alice, bob, make_file, db_session):
        record = make_file(alice, "X")
        grant = self._grant(db_session, bob, file_id=record.id)

        response = client.delete(f"/files/share/{grant.id}", headers=bob.headers)

        assert response.status_code == 403
        assert db_session.query(Permission).count() == 1

    def test_revoke_unknown_grant(self, client, alice):
        response = client.delete(
            "/files/share/00000000-0000-0000-0000-000000000000", headers=alice.headers
        )
        assert response.status_code == 404
