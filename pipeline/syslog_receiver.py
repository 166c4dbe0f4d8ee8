"""UDP syslog receiver: classifies each datagram standalone and hands it to a sink."""

from __future__ import annotations

import logging
import os
import socketserver
import threading
from typing import Callable

from models.log_entry import LogEntry
from parsers.syslog import parse_syslog, syslog_to_entry
from pipeline.identity_cache import SystemIdentityCache
from rules.violations import annotate

logger = logging.getLogger(__name__)

SYSLOG_HOST = os.getenv("SYSLOG_HOST", "0.0.0.0")
SYSLOG_PORT = int(os.getenv("SYSLOG_PORT", "514"))
MAX_DATAGRAM = 65535
EVICT_EVERY = int(os.getenv("SYSTEM_CACHE_EVICT_EVERY", "256"))


class _SyslogHandler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        data = self.request[0]
        sender_ip = self.client_address[0]
        self.server.receiver.handle_datagram(data, sender_ip)


class _UDPServer(socketserver.ThreadingUDPServer):
    daemon_threads = True
    allow_reuse_address = True
    max_packet_size = MAX_DATAGRAM


class SyslogReceiver:
    """Listens for syslog datagrams and emits classified LogEntry objects.

    ``resolve_system`` maps a sender IP to the configured NMS system name (or
    None); results are cached per IP for the cache TTL. Every ``evict_every``
    datagrams the cache is swept so senders that went quiet do not linger.
    """

    def __init__(
        self,
        sink: Callable[[LogEntry], None],
        host: str = SYSLOG_HOST,
        port: int = SYSLOG_PORT,
        resolve_system: Callable[[str], str | None] | None = None,
        cache: SystemIdentityCache | None = None,
        evict_every: int = EVICT_EVERY,
    ) -> None:
        self.sink = sink
        self.host = host
        self.port = port
        self.resolve_system = resolve_system
        self.cache = cache if cache is not None else SystemIdentityCache()
        self.evict_every = max(1, evict_every)
        self._received = 0
        self._count_lock = threading.Lock()
        self._server: _UDPServer | None = None
        self._thread: threading.Thread | None = None

    def system_for(self, ip: str) -> str | None:
        if self.resolve_system is None:
            return None
        hit, system = self.cache.lookup(ip)
        if hit:
            return system
        system = self.resolve_system(ip)
        self.cache.insert(ip, system)
        return system

    def _maybe_evict(self) -> None:
        with self._count_lock:
            self._received += 1
            due = self._received % self.evict_every == 0
        if due:
            evicted = self.cache.evict_expired()
            if evicted:
                logger.debug("Evicted %d expired system identities", evicted)

    def handle_datagram(self, data: bytes, sender_ip: str) -> LogEntry | None:
        """Parse, classify and forward one datagram. Errors are logged, never raised."""
        try:
            text = data.decode("utf-8", errors="replace")
            if not text.strip():
                return None
            self._maybe_evict()
            system = self.system_for(sender_ip)
            message = parse_syslog(text, sender_ip=sender_ip)
            entry = annotate(syslog_to_entry(message, system=system))
            logger.debug("Received from %s - %s: %s", sender_ip, entry.operator, message.message[:100])
            self.sink(entry)
            return entry
        except Exception:
            logger.exception("Failed to process syslog datagram from %s", sender_ip)
            return None

    def start(self) -> None:
        if self._server is not None:
            return
        self._server = _UDPServer((self.host, self.port), _SyslogHandler)
        self._server.receiver = self
        self.port = self._server.server_address[1]
        self._thread = threading.Thread(target=self._server.serve_forever, name="syslog-receiver", daemon=True)
        self._thread.start()
        logger.info("Syslog receiver listening on %s:%d/udp", self.host, self.port)

    def stop(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread is not None:
            self._thread.join()
            self._thread = None
            logger.info("Syslog receiver stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
