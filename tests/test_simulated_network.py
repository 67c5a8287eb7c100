"""
Tests para la red simulada.
"""
import asyncio

import pytest

from network import HTTPNetwork, SimulatedNetwork, create_network


async def _make_nodes(node_ids, **kwargs):
    """Crea redes con un handler que acumula lo recibido."""
    inboxes = {}
    networks = {}
    for node_id in node_ids:
        inbox = []
        network = SimulatedNetwork(node_id, latency_ms=1, max_latency_ms=2, **kwargs)

        async def handler(payload, inbox=inbox):
            inbox.append(payload)

        network.set_message_handler(handler)
        await network.start()
        inboxes[node_id] = inbox
        networks[node_id] = network
    return networks, inboxes


@pytest.mark.asyncio
async def test_send_reaches_all_other_nodes():
    """Test broadcast de radio: todos menos el emisor."""
    networks, inboxes = await _make_nodes([1, 2, 3])

    await networks[1].send(b"hola", target_hint=2)
    await asyncio.sleep(0.05)

    assert inboxes[1] == []
    assert inboxes[2] == [b"hola"]
    assert inboxes[3] == [b"hola"]  # medio compartido: la pista se ignora


@pytest.mark.asyncio
async def test_partition_blocks_both_directions():
    """Test partición entre grupos."""
    networks, inboxes = await _make_nodes([1, 2, 3, 4])

    SimulatedNetwork.split([[1, 2], [3, 4]])
    await networks[1].send(b"a")
    await networks[3].send(b"b")
    await asyncio.sleep(0.05)

    assert inboxes[2] == [b"a"]
    assert inboxes[4] == [b"b"]
    assert inboxes[3] == []
    assert inboxes[1] == []

    SimulatedNetwork.heal_all()
    await networks[1].send(b"c")
    await asyncio.sleep(0.05)

    assert inboxes[3] == [b"c"]
    assert inboxes[4] == [b"b", b"c"]


@pytest.mark.asyncio
async def test_failed_node_neither_sends_nor_receives():
    """Test caída simulada de un nodo."""
    networks, inboxes = await _make_nodes([1, 2])

    SimulatedNetwork.simulate_node_failure(2)
    await networks[1].send(b"x")
    await networks[2].send(b"y")
    await asyncio.sleep(0.05)

    assert inboxes[1] == []
    assert inboxes[2] == []

    SimulatedNetwork.simulate_node_recovery(2)
    await networks[2].send(b"z")
    await asyncio.sleep(0.05)

    assert inboxes[1] == [b"z"]


@pytest.mark.asyncio
async def test_packet_loss():
    """Test pérdida total de paquetes."""
    networks, inboxes = await _make_nodes([1, 2], packet_loss=1.0)

    await networks[1].send(b"x")
    await asyncio.sleep(0.05)

    assert inboxes[2] == []


@pytest.mark.asyncio
async def test_duplication():
    """Test duplicación de paquetes."""
    networks, inboxes = await _make_nodes([1, 2], duplicate_rate=1.0)

    await networks[1].send(b"x")
    await asyncio.sleep(0.05)

    assert inboxes[2] == [b"x", b"x"]


@pytest.mark.asyncio
async def test_stopped_node_is_unreachable():
    """Test nodo detenido deja de recibir y se desregistra."""
    networks, inboxes = await _make_nodes([1, 2])

    await networks[2].stop()
    await networks[1].send(b"x")
    await asyncio.sleep(0.05)

    assert inboxes[2] == []
    assert SimulatedNetwork.get_node(2) is None


def test_create_network_factory():
    """Test fábrica de redes."""
    assert isinstance(create_network("simulated", 1), SimulatedNetwork)

    http = create_network("http", 2, peers={1: ("localhost", 8001), 3: ("localhost", 8003)})
    assert isinstance(http, HTTPNetwork)
    assert http.get_node_url(1) == "http://localhost:8001"

    with pytest.raises(ValueError):
        create_network("carrier-pigeon", 1)

