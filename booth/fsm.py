from __future__ import annotations

from statemachine import State, StateMachine

from booth.api.models import TransportStage
from booth.sequence import TransportSequence


class TransportFSM(StateMachine):
    """FSM wrapper around a TransportSequence.

    committed -> humming -> dissolving -> suctioned -> arrived, with aborted
    reachable from every non-terminal stage. The sequencer decides when to fire;
    the FSM only guards which transition is legal.
    """

    committed = State(TransportStage.committed.value, value=TransportStage.committed.value, initial=True)
    humming = State(TransportStage.humming.value, value=TransportStage.humming.value)
    dissolving = State(TransportStage.dissolving.value, value=TransportStage.dissolving.value)
    suctioned = State(TransportStage.suctioned.value, value=TransportStage.suctioned.value)
    arrived = State(TransportStage.arrived.value, value=TransportStage.arrived.value, final=True)
    aborted = State(TransportStage.aborted.value, value=TransportStage.aborted.value, final=True)

    hum = committed.to(humming)
    dissolve = humming.to(dissolving)
    draw_in = dissolving.to(suctioned)
    arrive = suctioned.to(arrived)
    abort = committed.to(aborted) | humming.to(aborted) | dissolving.to(aborted) | suctioned.to(aborted)

    def __init__(self, sequence: TransportSequence):
        self.sequence = sequence
        super().__init__(start_value=sequence.stage.value)

    def sync_stage_to_model(self) -> None:
        self.sequence.stage = TransportStage(str(self.current_state.value))
