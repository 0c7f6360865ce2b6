"""Tests for QR rendering and the notification feed."""

import base64
from datetime import timedelta

from crownhour.services.notifications import NoticeLevel, Notifier
from crownhour.utils.helpers import get_current_timestamp
from crownhour.utils.qr import build_otpauth_uri, generate_qr_data_uri


class TestQrCode:
    """Test otpauth URI and PNG data URI rendering."""

    def test_otpauth_uri(self):
        """Test the otpauth URI format."""
        uri = build_otpauth_uri("JBSWY3DPEHPK3PXP", "client@example.com", "CrownHour")

        assert uri == "otpauth://totp/CrownHour%20%28client%40example.com%29?secret=JBSWY3DPEHPK3PXP&issuer=CrownHour"

    def test_data_uri_is_png(self):
        """Test the data URI holds a PNG image."""
        data_uri = generate_qr_data_uri("otpauth://totp/test?secret=JBSWY3DPEHPK3PXP")

        prefix = "data:image/png;base64,"
        assert data_uri.startswith(prefix)
        assert base64.b64decode(data_uri[len(prefix):])[:8] == b"\x89PNG\r\n\x1a\n"


class TestNotifier:
    """Test notice subscriptions and expiry."""

    def test_subscribers_receive_notices(self):
        """Test subscribers receive published notices."""
        notifier = Notifier()
        received = []
        unsubscribe = notifier.subscribe(received.append)

        notifier.success("Saved")
        unsubscribe()
        notifier.error("Ignored by unsubscribed callback")

        assert [n.message for n in received] == ["Saved"]
        assert received[0].level == NoticeLevel.SUCCESS

    def test_failing_subscriber_does_not_block_others(self):
        """Test a failing subscriber does not block the others."""
        notifier = Notifier()
        received = []

        def broken(notice):
            raise RuntimeError("ui gone")

        notifier.subscribe(broken)
        notifier.subscribe(received.append)

        notifier.info("Hello")

        assert len(received) == 1

    def test_notices_expire(self):
        """Test notices expire after their lifetime."""
        notifier = Notifier()
        notifier.info("Short lived")

        later = get_current_timestamp() + timedelta(seconds=6)

        assert len(notifier.active()) == 1
        assert notifier.active(later) == []

    def test_recent_list_is_bounded(self):
        """Test the recent notice list is bounded."""
        notifier = Notifier(max_recent=3)
        for index in range(5):
            notifier.info(f"notice {index}")

        assert [n.message for n in notifier.active()] == ["notice 2", "notice 3", "notice 4"]

        notifier.dismiss_all()
        assert notifier.active() == []
