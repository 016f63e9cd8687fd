"""Route tests for /api/notifications."""

from admitlink.services.notification_service import NotificationService


class TestNotificationRoutes:
    def test_requires_auth(self, client):
        assert client.get("/api/notifications").status_code == 401

    def test_admin_can_read_own_inbox(self, client, auth_headers_admin):
        response = client.get("/api/notifications", headers=auth_headers_admin)

        assert response.status_code == 200
        assert response.json()["pagination"]["totalPages"] == 1

    def test_list_newest_first(self, client, db, test_student, auth_headers_student):
        service = NotificationService(db)
        service.create(test_student.id, "application", related_id="01HAPPLICATION000000000001")
        latest = service.create(test_student.id, "status_update")

        response = client.get(
            "/api/notifications", params={"limit": 1}, headers=auth_headers_student
        )

        assert response.status_code == 200
        body = response.json()
        assert body["items"][0]["id"] == latest.id
        assert body["items"][0]["isRead"] is False
        assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "totalPages": 2}

    def test_mark_read(self, client, db, test_student, auth_headers_student):
        notification = NotificationService(db).create(test_student.id, "message")

        response = client.patch(
            f"/api/notifications/{notification.id}/read", headers=auth_headers_student
        )

        assert response.status_code == 200
        assert response.json()["isRead"] is True

    def test_mark_read_of_someone_elses_notification(
        self, client, db, test_university, auth_headers_student
    ):
        notification = NotificationService(db).create(test_university.id, "message")

        response = client.patch(
            f"/api/notifications/{notification.id}/read", headers=auth_headers_student
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Notification not found"
