"""Tests for the analytics rollups and endpoints."""

from datetime import datetime

from jobguard.models.submission import WarningFlag
from jobguard.services import analytics_service

ANALYTICS = "/api/v1/analytics"
HIGH_RISK_TEXT = "earn $ and pay a fee"


class TestUserAnalytics:
    """Tests for GET /analytics/user."""

    def test_summary_is_scoped_to_caller(self, client, user, other_user, user_headers, make_submission):
        make_submission(user, description=HIGH_RISK_TEXT)
        make_submission(user)
        make_submission(other_user)

        response = client.get(f"{ANALYTICS}/user", headers=user_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["summary"] == {
            "total_scans": 2,
            "high_risk_scans": 1,
            "medium_risk_scans": 1,
            "low_risk_scans": 0,
            "average_scam_probability": 62.5,
        }
        assert len(data["scans_by_month"]) == 1
        assert data["scans_by_month"][0]["count"] == 2
        assert data["scans_by_month"][0]["high_risk"] == 1

    def test_top_flags_break_ties_by_name(self, client, user, user_headers, make_submission):
        make_submission(user, description=HIGH_RISK_TEXT)
        make_submission(user)

        flags = client.get(f"{ANALYTICS}/user", headers=user_headers).json()["data"]["top_warning_flags"]
        assert flags == [
            {"type": "no_company_presence", "count": 2},
            {"type": "unrealistic_salary", "count": 2},
            {"type": "pressure_tactics", "count": 1},
            {"type": "upfront_payment", "count": 1},
            {"type": "vague_description", "count": 1},
        ]

    def test_date_range(self, client, user, user_headers, make_submission, days_ago):
        make_submission(user, created_at=days_ago(40))
        make_submission(user, created_at=days_ago(1))

        params = {"start_date": days_ago(10).isoformat()}
        summary = client.get(f"{ANALYTICS}/user", params=params, headers=user_headers).json()["data"]["summary"]
        assert summary["total_scans"] == 1

        params = {"end_date": days_ago(10).isoformat()}
        summary = client.get(f"{ANALYTICS}/user", params=params, headers=user_headers).json()["data"]["summary"]
        assert summary["total_scans"] == 1

    def test_inverted_range(self, client, user_headers, days_ago):
        params = {"start_date": days_ago(1).isoformat(), "end_date": days_ago(5).isoformat()}
        response = client.get(f"{ANALYTICS}/user", params=params, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "start_date"

    def test_mixed_timezone_range(self, client, user, user_headers, admin_headers, make_submission, days_ago):
        """An aware start and a naive end are compared in UTC."""
        make_submission(user, created_at=days_ago(40))
        make_submission(user, created_at=days_ago(1))
        params = {
            "start_date": days_ago(10).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "end_date": days_ago(0).isoformat(),
        }

        response = client.get(f"{ANALYTICS}/user", params=params, headers=user_headers)
        assert response.status_code == 200
        assert response.json()["data"]["summary"]["total_scans"] == 1

        assert client.get(f"{ANALYTICS}/global", params=params, headers=admin_headers).status_code == 200

    def test_mixed_timezone_inverted_range(self, client, user_headers, days_ago):
        params = {
            "start_date": days_ago(1).strftime("%Y-%m-%dT%H:%M:%S+00:00"),
            "end_date": days_ago(5).isoformat(),
        }
        response = client.get(f"{ANALYTICS}/user", params=params, headers=user_headers)
        assert response.status_code == 400

    def test_offset_is_shifted_to_utc(self, client, user, user_headers, make_submission, days_ago):
        """12:00+02:00 is 10:00 UTC, so a scan at 11:00 UTC is inside the range."""
        scanned = days_ago(3).replace(hour=11, minute=0, second=0, microsecond=0)
        make_submission(user, created_at=scanned)
        params = {"start_date": scanned.replace(hour=12).strftime("%Y-%m-%dT%H:%M:%S+02:00")}
        summary = client.get(f"{ANALYTICS}/user", params=params, headers=user_headers).json()["data"]["summary"]
        assert summary["total_scans"] == 1

    def test_requires_authentication(self, client):
        assert client.get(f"{ANALYTICS}/user").status_code == 401


class TestGlobalAnalytics:
    """Tests for GET /analytics/global."""

    def test_admin_only(self, client, user_headers):
        response = client.get(f"{ANALYTICS}/global", headers=user_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "User role 'user' is not authorized to access this route"

    def test_totals(self, client, user, other_user, admin_headers, make_submission, safe_description):
        make_submission(user, description=HIGH_RISK_TEXT)
        make_submission(other_user)
        reported = make_submission(
            other_user, description=safe_description, company_website="https://acme-corp.com", is_reported=True,
        )

        data = client.get(f"{ANALYTICS}/global", headers=admin_headers).json()["data"]
        assert data["global_stats"] == {
            "total_scans": 3,
            "scams_detected": 1,
            "safe_jobs": 1,
            "flagged_for_review": 1,
            "average_scam_probability": 41.67,
            "reported_jobs": 1,
        }
        assert reported.risk_level == "low"
        distribution = {row["type"]: row["count"] for row in data["scam_type_distribution"]}
        assert distribution["unrealistic_salary"] == 2
        assert data["monthly_trends"][0]["total_scans"] == 3


class TestTrends:
    """Tests for GET /analytics/trends."""

    def test_last_year_oldest_first(self, client, user, make_submission, days_ago):
        make_submission(user, created_at=days_ago(400))
        make_submission(user, created_at=days_ago(70))
        make_submission(user, created_at=days_ago(1))

        response = client.get(f"{ANALYTICS}/trends")
        assert response.status_code == 200
        months = response.json()["data"]["monthly_trends"]
        assert sum(month["total_scans"] for month in months) == 2
        keys = [(month["year"], month["month"]) for month in months]
        assert keys == sorted(keys)
        assert months[0]["flagged_jobs"] == 1

    def test_one_year_before_leap_day(self):
        assert analytics_service.one_year_before(datetime(2024, 2, 29, 8)) == datetime(2023, 2, 28, 8)


class TestAlerts:
    """Tests for GET /analytics/alerts."""

    def test_only_completed_elevated_scans(self, client, user, make_submission, safe_description):
        make_submission(user, description=safe_description, company_website="https://acme-corp.com")
        make_submission(user, status="failed")
        make_submission(user, status="analyzing")
        alert = make_submission(user)

        body = client.get(f"{ANALYTICS}/alerts").json()
        assert body["count"] == 1
        item = body["data"]["alerts"][0]
        assert item["id"] == alert.id
        assert item["company"] == "Unknown Company"
        assert item["job_title"] == "Untitled Position"
        assert item["location"] == "Remote"
        assert set(item) == {
            "id", "company", "job_title", "location", "risk_level",
            "scam_probability", "warning_flags", "detected_at",
        }

    def test_undetected_flags_hidden(self, client, db, user, make_submission):
        alert = make_submission(user, company_name="Acme", job_title="Clerk", location="Berlin")
        db.add(WarningFlag(submission_id=alert.id, position=9, type="phishing", severity="high",
                           description="not fired", detected=False))
        db.commit()

        item = client.get(f"{ANALYTICS}/alerts").json()["data"]["alerts"][0]
        assert item["company"] == "Acme"
        assert "phishing" not in [flag["type"] for flag in item["warning_flags"]]

    def test_limit_is_capped(self, client, user, make_submission):
        for _ in range(52):
            make_submission(user)

        assert client.get(f"{ANALYTICS}/alerts").json()["count"] == 10
        assert client.get(f"{ANALYTICS}/alerts", params={"limit": 3}).json()["count"] == 3
        assert client.get(f"{ANALYTICS}/alerts", params={"limit": 500}).json()["count"] == 50

    def test_limit_must_be_positive(self, client):
        assert client.get(f"{ANALYTICS}/alerts", params={"limit": 0}).status_code == 400
