import pytest

from logtail.models import LogEvent


@pytest.fixture
def sample_event():
    return LogEvent.from_api(
        {
            "id": "AQAAAYx1",
            "type": "log",
            "attributes": {
                "timestamp": "2024-01-15T10:30:00.123Z",
                "status": "info",
                "message": "User logged in",
                "service": "auth-service",
                "tags": ["pod_name:web-1", "env:prod", "url:http://x:80", "standalone"],
                "attributes": {"duration": 45.2, "http": {"status_code": 200}},
            },
        }
    )
