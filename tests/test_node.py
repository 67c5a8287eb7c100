"""
Tests para el nodo: bucle de eventos serializado y API HTTP.
"""
import asyncio
import importlib.util
import os

import pytest
from aiohttp.test_utils import TestClient, TestServer

from bully import BullyMessage, ConfigurationError, MessageKind, TimerTag, encode_message
from network.simulated_network import SimulatedNetwork
from node import ElectionNode
from conftest import ROOT, RecordingNetwork, fast_config, make_config


async def _wait_for(predicate, timeout, poll=0.02):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(poll)
    return predicate()


@pytest.mark.asyncio
async def test_stale_timer_event_is_discarded():
    """Test evento de un timer ya rearmado: no llega al motor."""
    network = RecordingNetwork()
    node = ElectionNode(make_config(3), network=network)
    node.election.state.current_leader = 3

    stale = node.timers.after(10.0, TimerTag.HEARTBEAT)
    current = node.timers.reset(TimerTag.HEARTBEAT, 10.0)

    await node._process(stale)
    assert network.messages == []

    await node._process(current)
    [heartbeat] = network.messages
    assert heartbeat.kind == MessageKind.HEARTBEAT

    node.timers.cancel_all()


@pytest.mark.asyncio
async def test_handler_error_does_not_stop_processing(monkeypatch):
    """Test una excepción en un handler se registra y el nodo sigue."""
    node = ElectionNode(make_config(3), network=RecordingNetwork())

    async def broken(event):
        raise RuntimeError("boom")

    monkeypatch.setattr(node.election, "handle_timer", broken)

    await node._process(node.timers.after(10.0, TimerTag.HEARTBEAT))

    announce = BullyMessage(MessageKind.COORDINATOR_ANNOUNCE, sender_id=5, sequence=1)
    await node._process(encode_message(announce))

    assert node.current_leader == 5
    node.timers.cancel_all()


@pytest.mark.asyncio
async def test_single_node_elects_itself():
    """Test nodo solo: se declara coordinador tras el timeout de elección."""
    node = ElectionNode(fast_config(4), network=SimulatedNetwork(4))

    await node.start()
    try:
        await asyncio.wait_for(node.wait_started(), timeout=1.0)
        assert await _wait_for(node.is_leader, timeout=1.0)

        status = node.get_status()
        assert status["running"]
        assert status["current_leader"] == 4
        assert status["is_leader"]
    finally:
        await node.shutdown()

    assert not node.get_status()["running"]
    assert not node.network.is_running()


@pytest.mark.asyncio
async def test_http_message_status_and_metrics():
    """Test API HTTP: POST /message, GET /status y GET /metrics."""
    node = ElectionNode(fast_config(3), network=SimulatedNetwork(3))
    await node.start()

    client = TestClient(TestServer(node.create_http_app()))
    await client.start_server()
    try:
        announce = BullyMessage(MessageKind.COORDINATOR_ANNOUNCE, sender_id=5, sequence=1)
        response = await client.post(
            "/message",
            data=encode_message(announce),
            headers={"Content-Type": "application/octet-stream"}
        )
        assert response.status == 200

        assert await _wait_for(lambda: node.current_leader == 5, timeout=2.0)

        response = await client.get("/status")
        status = await response.json()
        assert status["node_id"] == 3
        assert status["current_leader"] == 5
        assert status["state"] == "normal"

        response = await client.get("/metrics")
        text = await response.text()
        assert "bully_messages_received_total" in text
    finally:
        await client.close()
        await node.shutdown()


@pytest.mark.asyncio
async def test_http_malformed_message_is_dropped():
    """Test POST /message con bytes inválidos: aceptado y descartado por el motor."""
    node = ElectionNode(fast_config(3), network=SimulatedNetwork(3))
    await node.start()

    client = TestClient(TestServer(node.create_http_app()))
    await client.start_server()
    try:
        response = await client.post("/message", data=b"basura")
        assert response.status == 200

        await asyncio.sleep(0.2)
        assert node.get_status()["running"]
    finally:
        await client.close()
        await node.shutdown()


def _load_entrypoint():
    path = os.path.join(ROOT, "docker-entrypoint.py")
    spec = importlib.util.spec_from_file_location("docker_entrypoint", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_parse_peers():
    """Test lista de peers del contenedor."""
    entrypoint = _load_entrypoint()

    assert entrypoint.parse_peers("") == {}
    assert entrypoint.parse_peers("1@node1:8001, 3@node3:8003") == {
        1: ("node1", 8001),
        3: ("node3", 8003),
    }

    with pytest.raises(ConfigurationError):
        entrypoint.parse_peers("1@node1")
    with pytest.raises(ConfigurationError):
        entrypoint.parse_peers("node1:8001")
