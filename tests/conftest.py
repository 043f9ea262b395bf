"""Shared fixtures: an in-memory socket and endpoints with no real network handlers."""

from __future__ import annotations

import queue
import threading

import pytest

from ssdp_discovery_endpoint import SsdpEndpoint, SsdpHandler, SsdpMessage, SsdpUrl
from ssdp_discovery_endpoint import endpoint as endpoint_module
from ssdp_discovery_endpoint import handler as handler_module

GROUP_URL_V4 = SsdpUrl("udp", "239.255.255.250", 1900)
GROUP_URL_V6 = SsdpUrl("udp", "ff02::c", 1900)


class FakeSocket:
    """Stands in for SsdpSocket: records sends, serves queued datagrams."""

    def __init__(self):
        self.sent = []
        self.inbox = queue.Queue()
        self._pending = None
        self.recv_error = None
        self.send_error = None
        self.short_send = False
        self.closed = False
        self.last_error_msg = ""
        self.sent_event = threading.Event()

    def deliver(self, data, addr):
        self.inbox.put((data, addr))

    def select_recv(self, timeout):
        if self.recv_error is not None:
            return True
        if self._pending is None:
            try:
                self._pending = self.inbox.get(timeout=timeout)
            except queue.Empty:
                return False
        return True

    def recvfrom(self, bufsize=65507):
        if self.recv_error is not None:
            raise self.recv_error
        item, self._pending = self._pending, None
        return item

    def sendto(self, data, addr):
        if self.send_error is not None:
            self.last_error_msg = str(self.send_error)
            raise self.send_error
        self.sent.append((data, tuple(addr)))
        self.sent_event.set()
        if self.short_send:
            return len(data) - 1
        return len(data)

    def sent_messages(self):
        return [ (SsdpMessage(raw_data=data), addr) for data, addr in self.sent ]

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def fixed_host_name(monkeypatch):
    monkeypatch.setattr(handler_module, "get_host_name", lambda: "hostX")


@pytest.fixture(autouse=True)
def clean_endpoint_module_state(monkeypatch):
    monkeypatch.setattr(endpoint_module, "_blacklisted_groups", set())
    monkeypatch.setattr(endpoint_module, "_singleton", None)
    monkeypatch.setattr(endpoint_module, "_singleton_refs", 0)


@pytest.fixture
def endpoint():
    ep = SsdpEndpoint(receive_timeout=0.01, spawn_handlers=False)
    yield ep
    ep.done.set()
    for h in ep.handlers:
        h.join()


def make_handler(ep, ip_ver=4, start=False):
    sock = FakeSocket()
    handler = SsdpHandler(ep, sock, GROUP_URL_V6 if ip_ver == 6 else GROUP_URL_V4, ip_ver)
    ep.attach_handler(handler, start=start)
    return handler


@pytest.fixture
def handler4(endpoint):
    return make_handler(endpoint, 4)


@pytest.fixture
def handler6(endpoint):
    return make_handler(endpoint, 6)
