"""
Tests para la reconciliación de líderes tras unir particiones.
"""
import pytest

from bully import BullyMessage, ElectionState, MessageKind, NO_LEADER, TimerTag


def _heartbeat(sender_id, sequence=1):
    return BullyMessage(MessageKind.HEARTBEAT, sender_id=sender_id, sequence=sequence)


def _request(sender_id, sequence=1):
    return BullyMessage(MessageKind.ELECTION_REQUEST, sender_id=sender_id, sequence=sequence)


# ══════════════════════════════════════════════════════════
# Re-anuncio del coordinador
# ══════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_leader_reannounces_on_lower_request(make_election):
    """Test líder que recibe ELECTION de menor prioridad: ANSWER + COORDINATOR."""
    leader = make_election(6, current_leader=6, election_sequence=4)

    await leader.handle_message(_request(2, sequence=9))

    answer, announce = leader.network.messages
    assert answer.kind == MessageKind.ELECTION_ANSWER
    assert answer.target_id == 2
    assert answer.sequence == 9
    assert announce.kind == MessageKind.COORDINATOR_ANNOUNCE
    assert announce.is_broadcast
    assert announce.sequence == 4  # secuencia propia del líder


@pytest.mark.asyncio
async def test_follower_does_not_reannounce(make_election):
    """Test un seguidor solo responde ANSWER."""
    follower = make_election(5, current_leader=6)

    await follower.handle_message(_request(2))

    kinds = [m.kind for m in follower.network.messages]
    assert kinds == [MessageKind.ELECTION_ANSWER]


@pytest.mark.asyncio
async def test_prober_adopts_leader_within_one_round_trip(make_election):
    """Test nodo que sondea adopta al líder existente sin esperar timeout."""
    prober = make_election(3)
    leader = make_election(6, current_leader=6, election_sequence=2)

    await prober.start_election()
    [request] = prober.network.messages

    await leader.handle_message(request)
    for message in leader.network.messages:
        await prober.handle_message(message)

    assert prober.current_leader == 6
    assert prober.election_state == ElectionState.NORMAL
    # Sin vencer ningún timer: el sondeador no llegó a declararse coordinador
    assert not prober.network.of_kind(MessageKind.COORDINATOR_ANNOUNCE)


# ══════════════════════════════════════════════════════════
# Adopción por heartbeat
# ══════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_passive_node_without_leader_adopts(make_election):
    """Test nodo sin líder adopta al emisor de mayor prioridad."""
    node = make_election(2)

    await node.handle_message(_heartbeat(6))

    assert node.current_leader == 6
    assert node.election_state == ElectionState.NORMAL
    assert node.timers.resets == [(TimerTag.COORDINATOR, 10.0)]


@pytest.mark.asyncio
async def test_waiting_node_adopts(make_election):
    """Test nodo en WAITING_COORDINATOR adopta."""
    node = make_election(2, state=ElectionState.WAITING_COORDINATOR, awaiting_answer=True,
                         current_leader=4)

    await node.handle_message(_heartbeat(3))

    assert node.current_leader == 3
    assert node.election_state == ElectionState.NORMAL


@pytest.mark.asyncio
async def test_higher_leader_replaces_current(make_election):
    """Test HEARTBEAT de un nodo mayor que el líder actual."""
    node = make_election(1, current_leader=4)

    await node.handle_message(_heartbeat(6))

    assert node.current_leader == 6


@pytest.mark.asyncio
async def test_lower_leader_heartbeat_is_not_adopted(make_election):
    """Test HEARTBEAT de un nodo menor que el líder actual."""
    node = make_election(1, current_leader=6)

    await node.handle_message(_heartbeat(4))

    assert node.current_leader == 6
    assert node.timers.resets == []


@pytest.mark.asyncio
async def test_lower_priority_sender_is_never_adopted(make_election):
    """Test HEARTBEAT de menor prioridad que el receptor."""
    node = make_election(5)

    await node.handle_message(_heartbeat(3))

    assert node.current_leader == NO_LEADER


@pytest.mark.asyncio
async def test_duplicate_leader_steps_down(make_election):
    """Test líder de una partición cede ante el líder de mayor prioridad."""
    node = make_election(4, current_leader=4)

    await node.handle_message(_heartbeat(6))

    assert node.current_leader == 6
    assert not node.is_leader()


@pytest.mark.asyncio
async def test_electing_node_adopts(make_election):
    """Test nodo en ELECTION sin líder adopta al oír un HEARTBEAT."""
    node = make_election(2)
    await node.start_election()
    node.timers.clear()

    await node.handle_message(_heartbeat(5))

    assert node.current_leader == 5
    assert node.election_state == ElectionState.NORMAL


@pytest.mark.asyncio
async def test_adoption_supersedes_plain_reset(make_election):
    """Test la adopción sustituye al reseteo normal (un solo rearme)."""
    node = make_election(2, state=ElectionState.WAITING_COORDINATOR, current_leader=6)

    await node.handle_message(_heartbeat(6))

    assert node.election_state == ElectionState.NORMAL
    assert node.timers.count(TimerTag.COORDINATOR) == 1
