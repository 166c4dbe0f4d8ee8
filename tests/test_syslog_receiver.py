"""Tests for the UDP syslog receiver."""

import socket
import time
from unittest.mock import MagicMock

from models.log_entry import Level
from pipeline.identity_cache import SystemIdentityCache
from pipeline.syslog_receiver import SyslogReceiver

FORWARDED = b'<14>Mar  1 10:15:00 nms01 ADD-USER,Minor,bob,01/03/2024 10:15:00,NM,,Dev01,Successful,""'
PLAIN = b"<11>Mar  1 10:16:00 olt-gw kernel: link down on 0/3/7"


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestHandleDatagram:
    def test_forwarded_record_is_classified(self):
        sink = MagicMock()
        receiver = SyslogReceiver(sink, port=0)

        entry = receiver.handle_datagram(FORWARDED, "10.0.0.5")

        sink.assert_called_once_with(entry)
        assert entry.classified is True
        assert entry.is_violation is True
        assert entry.violation_type == "High Risk: Add User"
        assert entry.terminal_ip == "10.0.0.5"

    def test_plain_message_uses_severity(self):
        sink = MagicMock()
        entry = SyslogReceiver(sink, port=0).handle_datagram(PLAIN, "10.0.0.7")
        assert entry.operator == "olt-gw"
        assert entry.level == Level.MAJOR
        assert entry.source == "syslog-user"

    def test_resolved_system_becomes_source_and_is_cached(self):
        resolve = MagicMock(return_value="NCE-FAN")
        receiver = SyslogReceiver(MagicMock(), port=0, resolve_system=resolve, cache=SystemIdentityCache(60))

        first = receiver.handle_datagram(PLAIN, "10.0.0.7")
        receiver.handle_datagram(PLAIN, "10.0.0.7")

        assert first.source == "NCE-FAN"
        resolve.assert_called_once_with("10.0.0.7")

    def test_quiet_senders_are_evicted_periodically(self):
        clock = FakeClock()
        cache = SystemIdentityCache(60, clock=clock)
        cache.insert("10.0.0.99", "NCE-OLD")
        receiver = SyslogReceiver(
            MagicMock(), port=0, resolve_system=lambda ip: "NCE-FAN", cache=cache, evict_every=2
        )

        clock.now += 61
        receiver.handle_datagram(PLAIN, "10.0.0.7")
        assert len(cache) == 2

        receiver.handle_datagram(PLAIN, "10.0.0.7")
        assert len(cache) == 1
        assert cache.lookup("10.0.0.7") == (True, "NCE-FAN")

    def test_blank_datagram_ignored(self):
        sink = MagicMock()
        assert SyslogReceiver(sink, port=0).handle_datagram(b"  \n", "10.0.0.7") is None
        sink.assert_not_called()

    def test_sink_errors_are_logged_not_raised(self, caplog):
        sink = MagicMock(side_effect=RuntimeError("queue full"))
        result = SyslogReceiver(sink, port=0).handle_datagram(PLAIN, "10.0.0.7")
        assert result is None
        assert "Failed to process syslog datagram from 10.0.0.7" in caplog.text


class TestReceiverLifecycle:
    def test_start_receive_stop(self):
        received = []
        receiver = SyslogReceiver(received.append, host="127.0.0.1", port=0)
        receiver.start()
        try:
            assert receiver.is_running
            assert receiver.port != 0

            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.sendto(PLAIN, ("127.0.0.1", receiver.port))

            deadline = time.time() + 2.0
            while not received and time.time() < deadline:
                time.sleep(0.05)

            assert len(received) == 1
            assert received[0].operator == "olt-gw"
        finally:
            receiver.stop()
        assert not receiver.is_running

    def test_stop_when_not_started(self):
        receiver = SyslogReceiver(MagicMock(), port=0)
        receiver.stop()
        assert not receiver.is_running
