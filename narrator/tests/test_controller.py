import asyncio

import pytest

from narrator.services.playback.controller import AUDIO_UNAVAILABLE, PLAYBACK_FAILED, PlaybackController
from narrator.services.playback.sources import NarrationSource
from narrator.services.playback.transport import ClockTransport, HighlightSink
from narrator.shared.enums import PlaybackStatus, PlaybackSubStatus
from narrator.shared.errors import DocumentNotFoundError, PlaybackError
from narrator.shared.models import NarrationResponse, RenderedWordElement, WordTimestamp


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class RecordingSink(HighlightSink):
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def highlight(self, position: int) -> None:
        self.events.append(("highlight", position))

    def clear(self) -> None:
        self.events.append(("clear",))


class StaticSource(NarrationSource):
    def __init__(self, responses: dict[str, NarrationResponse] | None = None, error: Exception | None = None) -> None:
        self.responses = responses or {}
        self.error = error
        self.gates: dict[str, asyncio.Event] = {}
        self.requested: list[str] = []

    async def fetch(self, document_key: str) -> NarrationResponse:
        self.requested.append(document_key)
        gate = self.gates.get(document_key)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        return self.responses[document_key]


class FailingPlayTransport(ClockTransport):
    async def play(self) -> None:
        raise PlaybackError("autoplay blocked")


HELLO_WORLD = NarrationResponse(
    audio_url="/media/tts/hello/abc.mp3",
    timestamps=[
        WordTimestamp(word="Hello", start=0.0, end=0.5, normalized="hello"),
        WordTimestamp(word="world", start=0.5, end=1.0, normalized="world"),
    ],
    hash="abc",
)
OTHER = NarrationResponse(
    audio_url="/media/tts/other/def.mp3",
    timestamps=[WordTimestamp(word="Other", start=0.0, end=0.4, normalized="other")],
    hash="def",
)
ELEMENTS = [
    RenderedWordElement(position=0, text="Hello", normalized="hello"),
    RenderedWordElement(position=1, text="world.", normalized="world"),
]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport(clock: FakeClock) -> ClockTransport:
    return ClockTransport(duration_resolver=lambda url: 1.0, clock=clock)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def source() -> StaticSource:
    return StaticSource({"hello": HELLO_WORLD, "other": OTHER})


@pytest.fixture
def controller(source: StaticSource, transport: ClockTransport, sink: RecordingSink) -> PlaybackController:
    # A long frame interval keeps the background sampler out of the way; tests tick by hand.
    return PlaybackController(source, transport, sink, frame_interval=60)


async def _ready(controller: PlaybackController, sink: RecordingSink, key: str = "hello") -> None:
    await controller.request_narration(key, ELEMENTS)
    assert controller.state.status == PlaybackStatus.READY
    sink.events.clear()


class TestRequests:
    @pytest.mark.asyncio
    async def test_loading_then_ready(self, controller: PlaybackController) -> None:
        task = controller.request_narration("hello", ELEMENTS)
        assert controller.state.status == PlaybackStatus.LOADING
        assert controller.state.document_key == "hello"

        await task
        state = controller.state
        assert state.status == PlaybackStatus.READY
        assert state.sub_status == PlaybackSubStatus.PAUSED
        assert state.last_word_index == -1
        assert state.duration == 1.0
        assert state.audio_url == HELLO_WORLD.audio_url
        assert state.alignment == [0, 1]

    @pytest.mark.asyncio
    async def test_source_failure(self, transport: ClockTransport, sink: RecordingSink) -> None:
        controller = PlaybackController(StaticSource(error=DocumentNotFoundError("gone")), transport, sink)
        await controller.request_narration("hello", ELEMENTS)

        state = controller.state
        assert state.status == PlaybackStatus.ERROR
        assert state.error_message == AUDIO_UNAVAILABLE
        assert state.timestamps == []
        assert state.audio_url is None
        assert state.sub_status is None

    @pytest.mark.asyncio
    async def test_transport_load_failure(self, source: StaticSource, sink: RecordingSink) -> None:
        transport = ClockTransport(duration_resolver=lambda url: None)
        controller = PlaybackController(source, transport, sink)
        await controller.request_narration("hello", ELEMENTS)

        assert controller.state.status == PlaybackStatus.ERROR
        assert controller.state.error_message == AUDIO_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_new_request_supersedes_pending_one(
        self, controller: PlaybackController, source: StaticSource
    ) -> None:
        source.gates["hello"] = asyncio.Event()
        stale = controller.request_narration("hello", ELEMENTS)
        await asyncio.sleep(0)

        fresh = controller.request_narration("other", ELEMENTS)
        source.gates["hello"].set()
        await fresh
        await asyncio.sleep(0)

        assert stale.cancelled()
        assert controller.state.document_key == "other"
        assert controller.state.audio_url == OTHER.audio_url
        assert controller.state.alignment == [-1]

    @pytest.mark.asyncio
    async def test_new_request_resets_state(self, controller: PlaybackController, sink: RecordingSink) -> None:
        await _ready(controller, sink)
        await controller.play()

        controller.request_narration("other", ELEMENTS)
        assert controller.state.status == PlaybackStatus.LOADING
        assert controller.state.timestamps == []
        assert controller.state.sub_status is None
        assert controller.transport.audio_url is None
        assert sink.events[-1] == ("clear",)
        await controller.close()


class TestTransportControls:
    @pytest.mark.asyncio
    async def test_controls_ignored_unless_ready(self, controller: PlaybackController, transport: ClockTransport) -> None:
        await controller.toggle()
        await controller.play()
        controller.seek(0.5)
        controller.skip(5)

        assert controller.state.status == PlaybackStatus.IDLE
        assert transport.audio_url is None
        assert controller.state.current_time == 0.0

    @pytest.mark.asyncio
    async def test_toggle_play_pause(self, controller: PlaybackController, sink: RecordingSink, clock: FakeClock) -> None:
        await _ready(controller, sink)

        await controller.toggle()
        assert controller.state.sub_status == PlaybackSubStatus.PLAYING

        clock.now = 0.3
        assert controller.sample() == 0
        assert sink.events == [("highlight", 0)]

        await controller.toggle()
        assert controller.state.sub_status == PlaybackSubStatus.PAUSED
        assert controller.state.current_time == pytest.approx(0.3)
        assert controller.state.last_word_index == -1
        assert sink.events[-1] == ("clear",)
        assert controller._sampling_task is None

    @pytest.mark.asyncio
    async def test_play_failure(self, source: StaticSource, sink: RecordingSink) -> None:
        controller = PlaybackController(source, FailingPlayTransport(lambda url: 1.0), sink)
        await controller.request_narration("hello", ELEMENTS)
        await controller.play()

        assert controller.state.status == PlaybackStatus.ERROR
        assert controller.state.error_message == PLAYBACK_FAILED
        assert controller._sampling_task is None

    @pytest.mark.asyncio
    async def test_seek_clamps_and_resets_index(
        self, controller: PlaybackController, sink: RecordingSink, transport: ClockTransport
    ) -> None:
        await _ready(controller, sink)
        controller.state.last_word_index = 1

        controller.seek(5.0)
        assert controller.state.current_time == 1.0
        assert transport.position == 1.0
        assert controller.state.last_word_index == -1

        controller.seek(-3.0)
        assert controller.state.current_time == 0.0

    @pytest.mark.asyncio
    async def test_skip(self, controller: PlaybackController, sink: RecordingSink, transport: ClockTransport) -> None:
        await _ready(controller, sink)
        controller.seek(0.6)
        controller.skip(-0.5)
        assert transport.position == pytest.approx(0.1)
        controller.skip(15)
        assert transport.position == 1.0

    @pytest.mark.asyncio
    async def test_configured_skip_intervals(
        self,
        controller: PlaybackController,
        sink: RecordingSink,
        transport: ClockTransport,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        assert PlaybackController.skip_interval() == 5
        assert PlaybackController.skip_interval(long=True) == 15

        monkeypatch.setenv("NARRATION_FLAG_PLAYBACK_SKIP_SHORT", "0.25")
        monkeypatch.setenv("NARRATION_FLAG_PLAYBACK_SKIP_LONG", "0.5")
        await _ready(controller, sink)
        controller.skip_forward()
        assert transport.position == pytest.approx(0.25)
        controller.skip_forward(long=True)
        assert transport.position == pytest.approx(0.75)
        controller.skip_back()
        assert transport.position == pytest.approx(0.5)
        controller.skip_back(long=True)
        assert transport.position == pytest.approx(0.0)

    @pytest.mark.asyncio
    async def test_playback_rate(self, controller: PlaybackController, sink: RecordingSink, transport: ClockTransport) -> None:
        await _ready(controller, sink)
        controller.set_playback_rate(1.5)
        assert controller.state.playback_rate == 1.5
        assert transport.rate == 1.5

        with pytest.raises(ValueError):
            controller.set_playback_rate(3.0)


class TestSampling:
    @pytest.mark.asyncio
    async def test_highlight_follows_playback(
        self, controller: PlaybackController, sink: RecordingSink, clock: FakeClock
    ) -> None:
        await _ready(controller, sink)
        await controller.play()

        for now in (0.1, 0.3, 0.7, 0.9):
            clock.now = now
            controller.sample()

        assert sink.events == [("highlight", 0), ("highlight", 1)]
        assert controller.state.last_word_index == 1
        assert controller.state.current_time == pytest.approx(0.9)
        await controller.close()

    @pytest.mark.asyncio
    async def test_unmatched_word_keeps_previous_highlight(
        self, transport: ClockTransport, sink: RecordingSink, source: StaticSource, clock: FakeClock
    ) -> None:
        controller = PlaybackController(source, transport, sink, frame_interval=60)
        await controller.request_narration("hello", ELEMENTS[:1])
        sink.events.clear()
        await controller.play()

        clock.now = 0.3
        controller.sample()
        clock.now = 0.7
        assert controller.sample() == 1

        assert sink.events == [("highlight", 0)]
        await controller.close()

    @pytest.mark.asyncio
    async def test_media_end(self, controller: PlaybackController, sink: RecordingSink, clock: FakeClock) -> None:
        await _ready(controller, sink)
        await controller.play()
        clock.now = 0.7
        controller.sample()

        clock.now = 1.5
        assert controller.sample() == -1

        state = controller.state
        assert state.sub_status == PlaybackSubStatus.PAUSED
        assert state.current_time == 0.0
        assert state.last_word_index == -1
        assert sink.events[-1] == ("clear",)
        assert controller.transport.position == 0.0

    @pytest.mark.asyncio
    async def test_background_sampler(self, source: StaticSource, transport: ClockTransport, sink: RecordingSink, clock: FakeClock) -> None:
        controller = PlaybackController(source, transport, sink, frame_interval=0.001)
        await controller.request_narration("hello", ELEMENTS)
        clock.now = 0.0
        await controller.play()

        clock.now = 0.3
        await asyncio.sleep(0.05)
        assert ("highlight", 0) in sink.events

        # Reaching the end stops the sampler from inside its own tick.
        clock.now = 2.0
        await asyncio.sleep(0.05)
        assert controller.state.sub_status == PlaybackSubStatus.PAUSED
        assert controller._sampling_task is None
        await controller.close()

    @pytest.mark.asyncio
    async def test_resync(self, controller: PlaybackController, sink: RecordingSink, clock: FakeClock) -> None:
        await _ready(controller, sink)
        await controller.play()
        clock.now = 0.1
        controller.sample()

        clock.now = 0.7
        controller.resync()

        assert controller.state.current_time == pytest.approx(0.7)
        assert controller.state.last_word_index == 1
        assert sink.events[-1] == ("highlight", 1)
        assert controller._sampling_task is not None
        await controller.close()


class TestTeardown:
    @pytest.mark.asyncio
    async def test_close_releases_everything(
        self, controller: PlaybackController, sink: RecordingSink, transport: ClockTransport
    ) -> None:
        await _ready(controller, sink)
        await controller.play()
        sampler = controller._sampling_task

        await controller.close()

        assert sampler.done()
        assert transport.audio_url is None
        assert controller.state.status == PlaybackStatus.IDLE
        assert sink.events[-1] == ("clear",)

    @pytest.mark.asyncio
    async def test_close_cancels_pending_request(self, controller: PlaybackController, source: StaticSource) -> None:
        source.gates["hello"] = asyncio.Event()
        task = controller.request_narration("hello", ELEMENTS)
        await asyncio.sleep(0)

        await controller.close()

        assert task.cancelled()
        assert controller.state.status == PlaybackStatus.IDLE

    @pytest.mark.asyncio
    async def test_async_context_manager(self, source: StaticSource, transport: ClockTransport, sink: RecordingSink) -> None:
        async with PlaybackController(source, transport, sink, frame_interval=60) as controller:
            await controller.request_narration("hello", ELEMENTS)
            await controller.play()

        assert controller.state.status == PlaybackStatus.IDLE
        assert transport.audio_url is None
