"""Tests for the activity logger."""

import json
from unittest.mock import MagicMock, patch

from sqlalchemy.exc import OperationalError

from certauth.models import ActivityLog
from certauth.services.activity_logger import ActivityAction, ActivityLogger, RequestContext


def fake_request(headers: dict, host="10.0.0.9"):
    request = MagicMock()
    request.headers = headers
    request.client.host = host
    return request


class TestRequestContext:
    def test_forwarded_for_takes_first_hop(self):
        context = RequestContext.from_request(
            fake_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1", "User-Agent": "curl"})
        )

        assert context.ip_address == "203.0.113.5"
        assert context.user_agent == "curl"

    def test_real_ip_header(self):
        context = RequestContext.from_request(fake_request({"X-Real-IP": " 198.51.100.7 "}))

        assert context.ip_address == "198.51.100.7"
        assert context.user_agent is None

    def test_client_host_with_loopback_normalized(self):
        assert RequestContext.from_request(fake_request({}, host="::1")).ip_address == "127.0.0.1"

    def test_no_request(self):
        assert RequestContext.from_request(None) == RequestContext()


class TestActivityLogger:
    def test_dict_details_stored_as_json(self, db):
        ActivityLogger(db).log(
            ActivityAction.ACCOUNT_REJECTED,
            user_id="u1",
            admin_id="a1",
            details={"reason": "mismatch"},
            context=RequestContext(ip_address="1.2.3.4"),
        )

        entry = db.query(ActivityLog).one()
        assert entry.action == "ACCOUNT_REJECTED"
        assert json.loads(entry.details) == {"reason": "mismatch"}
        assert entry.ip_address == "1.2.3.4"

    def test_storage_failure_is_swallowed(self):
        session = MagicMock()
        session.commit.side_effect = OperationalError("INSERT", {}, Exception("disk full"))

        with patch("certauth.services.activity_logger.logger") as mock_logger:
            ActivityLogger(session).log(ActivityAction.LOGIN, user_id="u1")

        session.rollback.assert_called_once()
        mock_logger.exception.assert_called_once()
