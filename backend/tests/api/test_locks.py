"""
Tests for the edit lock endpoints.
"""
import pytest

from tests.factories import create_test_production_order

BASE_URL = "/api/v1/locks/PO-9301"


@pytest.fixture
def order(db, catalog):
    po = create_test_production_order(db, catalog, po_number="PO-9301")
    db.commit()
    return po


class TestLocks:

    @pytest.mark.api
    def test_status_when_free(self, client, order, viewer_headers):
        response = client.get(BASE_URL, headers=viewer_headers)

        assert response.status_code == 200
        assert response.json()["is_locked"] is False
        assert response.json()["owner_id"] is None

    @pytest.mark.api
    def test_acquire_and_status(self, client, order, encoder_user, encoder_headers, other_encoder_headers):
        response = client.post(f"{BASE_URL}/acquire", headers=encoder_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["is_locked"] is True
        assert data["is_owner"] is True
        assert data["owner_id"] == encoder_user.id
        assert data["owner_name"] == "Alice Encoder"

        seen_by_other = client.get(BASE_URL, headers=other_encoder_headers).json()
        assert seen_by_other["is_locked"] is True
        assert seen_by_other["is_owner"] is False

    @pytest.mark.api
    def test_acquire_held_by_other(self, client, order, encoder_headers, other_encoder_headers):
        client.post(f"{BASE_URL}/acquire", headers=encoder_headers)

        response = client.post(f"{BASE_URL}/acquire", headers=other_encoder_headers)

        assert response.status_code == 423
        body = response.json()
        assert body["details"]["owner_name"] == "Alice Encoder"
        assert body["details"]["locked_at"] is not None

    @pytest.mark.api
    def test_release_by_non_owner(self, client, order, encoder_headers, other_encoder_headers):
        client.post(f"{BASE_URL}/acquire", headers=encoder_headers)

        response = client.post(f"{BASE_URL}/release", headers=other_encoder_headers)

        assert response.status_code == 403
        assert response.json()["error"] == "NOT_LOCK_OWNER"

    @pytest.mark.api
    def test_release_by_owner(self, client, order, encoder_headers):
        client.post(f"{BASE_URL}/acquire", headers=encoder_headers)

        response = client.post(f"{BASE_URL}/release", headers=encoder_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Lock released"
        assert client.get(BASE_URL, headers=encoder_headers).json()["is_locked"] is False

    @pytest.mark.api
    def test_force_release(self, client, order, encoder_user, encoder_headers, admin_headers):
        client.post(f"{BASE_URL}/acquire", headers=encoder_headers)

        assert client.post(f"{BASE_URL}/force-release", headers=encoder_headers).status_code == 403

        response = client.post(f"{BASE_URL}/force-release", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["previous_owner_id"] == encoder_user.id

        again = client.post(f"{BASE_URL}/force-release", headers=admin_headers)
        assert again.json()["message"] == "No lock existed to release"

    @pytest.mark.api
    def test_viewer_cannot_acquire(self, client, order, viewer_headers):
        assert client.post(f"{BASE_URL}/acquire", headers=viewer_headers).status_code == 403
