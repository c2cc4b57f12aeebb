"""
Tests for command dispatch and the action launcher.
Each dispatch branch must come back as an outcome, never as an exception.
"""
import pytest

from chat_pipeline.actions import ActionDescriptor, HandlerRegistry, decode_action
from chat_pipeline.dispatcher import CommandDispatcher, DispatchOutcome, DispatchStatus
from chat_pipeline.errors import DispatchFailureReason, MalformedActionError


class FixedRewriter:
    """Rewriter returning a canned encoded action for one utterance."""

    def __init__(self, id, trigger, encoded, language_tag="en", service_ref="svc"):
        self.id = id
        self.trigger = trigger
        self.encoded = encoded
        self.language_tag = language_tag
        self.service_ref = service_ref
        self.calls = 0

    def apply(self, utterance):
        self.calls += 1
        return self.encoded if utterance == self.trigger else None


class ExplodingRewriter(FixedRewriter):
    def apply(self, utterance):
        raise MalformedActionError("", detail="broken template")


class BuggyRewriter(FixedRewriter):
    def apply(self, utterance):
        raise RuntimeError("rewriter bug")


@pytest.fixture
def launched():
    return []


@pytest.fixture
def dispatcher(launched):
    registry = HandlerRegistry()
    registry.register("view", launched.append)
    return CommandDispatcher(registry)


class TestDecodeAction:
    """Test decoding encoded actions."""

    def test_full_descriptor(self):
        descriptor = decode_action(
            '{"action": "view", "component": "browser", "data": "https://example.org", "extras": {"new_tab": true}}'
        )
        assert descriptor.action == "view"
        assert descriptor.component == "browser"
        assert descriptor.extras == {"new_tab": True}

    @pytest.mark.parametrize("encoded", ["", "not json", "[1, 2]", "{}", '{"action": ""}', '{"action": 5}'])
    def test_malformed(self, encoded):
        with pytest.raises(MalformedActionError):
            decode_action(encoded)


class TestHandlerRegistry:
    """Test handler resolution and launching."""

    def test_launch_known_action(self, launched):
        registry = HandlerRegistry()
        registry.register("view", launched.append)

        assert registry.launch(ActionDescriptor(action="view")) is True
        assert len(launched) == 1

    def test_launch_unknown_action(self):
        assert HandlerRegistry().launch(ActionDescriptor(action="view")) is False

    def test_component_narrowing(self, launched):
        registry = HandlerRegistry()
        registry.register("view", launched.append, component="browser")

        assert registry.launch(ActionDescriptor(action="view", component="maps")) is False
        assert registry.launch(ActionDescriptor(action="view", component="browser")) is True

    def test_failing_handler_counts_as_not_serviced(self):
        def boom(descriptor):
            raise RuntimeError("device gone")

        registry = HandlerRegistry()
        registry.register("view", boom)

        assert registry.launch(ActionDescriptor(action="view")) is False

    def test_register_requires_action(self):
        with pytest.raises(ValueError):
            HandlerRegistry().register("", lambda d: None)


class TestCommandDispatcher:
    """Test try_dispatch outcomes."""

    def test_not_a_command(self, dispatcher):
        rewriter = FixedRewriter("Commands", "open site", '{"action": "view"}')
        assert dispatcher.try_dispatch("hello", [rewriter]) == DispatchOutcome.not_a_command()

    def test_no_rewriters(self, dispatcher):
        assert dispatcher.try_dispatch("open site", []).status == DispatchStatus.NOT_A_COMMAND

    def test_dispatched(self, dispatcher, launched):
        rewriter = FixedRewriter("Commands", "open site", '{"action": "view", "data": "https://example.org"}')

        outcome = dispatcher.try_dispatch("open site", [rewriter])

        assert outcome.status == DispatchStatus.DISPATCHED
        assert outcome.rewriter_id == "Commands"
        assert outcome.action == "view"
        assert launched[0].data == "https://example.org"

    def test_first_recognizing_rewriter_wins(self, dispatcher, launched):
        first = FixedRewriter("Base", "open site", '{"action": "view", "data": "first"}')
        second = FixedRewriter("Commands", "open site", '{"action": "view", "data": "second"}')

        outcome = dispatcher.try_dispatch("open site", [first, second])

        assert outcome.rewriter_id == "Base"
        assert [d.data for d in launched] == ["first"]
        assert second.calls == 0

    def test_no_handler(self, dispatcher):
        rewriter = FixedRewriter("Commands", "alarm", '{"action": "set_alarm"}')

        outcome = dispatcher.try_dispatch("alarm", [rewriter])

        assert outcome.is_failure
        assert outcome.reason == DispatchFailureReason.NO_HANDLER
        assert outcome.action == "set_alarm"

    def test_malformed_encoding(self, dispatcher, launched):
        rewriter = FixedRewriter("Commands", "open site", '{"action": "view", "data": "a"b"}')

        outcome = dispatcher.try_dispatch("open site", [rewriter])

        assert outcome.reason == DispatchFailureReason.MALFORMED_ACTION
        assert launched == []

    def test_rewriter_reporting_malformed_action(self, dispatcher):
        rewriter = ExplodingRewriter("Commands", "x", None)

        outcome = dispatcher.try_dispatch("anything", [rewriter])

        assert outcome.status == DispatchStatus.DISPATCH_FAILED
        assert outcome.reason == "malformed action"

    def test_launch_encoded(self, dispatcher, launched):
        assert dispatcher.launch_encoded('{"action": "view"}').status == DispatchStatus.DISPATCHED
        assert dispatcher.launch_encoded("hello").reason == "malformed action"

    def test_rewriter_bug_is_a_failed_outcome(self, dispatcher):
        rewriter = BuggyRewriter("Commands", "x", None)

        outcome = dispatcher.try_dispatch("anything", [rewriter])

        assert outcome.is_failure
        assert outcome.reason == DispatchFailureReason.MALFORMED_ACTION
        assert outcome.rewriter_id == "Commands"

    def test_raising_launcher_counts_as_no_handler(self):
        class RaisingLauncher:
            def launch(self, descriptor):
                raise RuntimeError("launcher down")

        dispatcher = CommandDispatcher(RaisingLauncher())

        outcome = dispatcher.launch_encoded('{"action": "view"}')

        assert outcome.reason == DispatchFailureReason.NO_HANDLER
        assert outcome.action == "view"
