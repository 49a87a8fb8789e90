"""Tests for the scene transition engine."""

import logging

import pytest

from conftest import param
from moodfx.models import Directive, Scene
from moodfx.scenes import BASELINE_DEFAULTS, SCENES, baseline_items
from moodfx.transitions import SceneTransitionEngine


def assert_at_baseline(registry):
    for unit, name, default in baseline_items():
        value = param(registry, unit, name)
        if isinstance(default, float):
            assert value == pytest.approx(default), f"{unit}.{name}"
        else:
            assert value == default, f"{unit}.{name}"
    assert registry.source.playback_rate == 1.0


class TestRequestScene:
    """Reset-then-apply sequencing."""

    def test_apply_lands_after_delay(self, engine, loaded_registry, scheduler):
        assert engine.request_scene("horror")
        assert engine.current_scene is None
        assert engine.pending is not None

        scheduler.advance(0.11)
        assert param(loaded_registry, "reverb", "room_size") == pytest.approx(0.3)

        scheduler.advance(0.02)
        assert engine.current_scene == "horror"
        assert engine.pending is None
        assert param(loaded_registry, "reverb", "room_size") == pytest.approx(0.8)
        assert param(loaded_registry, "bit_crusher", "bits") == 8

    def test_ramped_directives_glide(self, engine, loaded_registry, scheduler):
        engine.request_scene("horror")
        scheduler.advance(0.12 + 1.0)
        assert param(loaded_registry, "tremolo", "wet") == pytest.approx(0.035)
        scheduler.advance(1.5)
        assert param(loaded_registry, "tremolo", "wet") == pytest.approx(0.07)

    def test_playback_rate_reaches_scene_rate(self, engine, loaded_registry, scheduler):
        engine.request_scene("epic")
        scheduler.advance(6.0)
        assert loaded_registry.source.playback_rate == 0.985

    def test_scenes_do_not_accumulate(self, engine, loaded_registry, scheduler):
        engine.request_scene("epic")
        scheduler.advance(2.0)
        assert param(loaded_registry, "stereo_widener", "wet") == pytest.approx(0.5)

        engine.request_scene("lofi")
        scheduler.advance(2.0)
        assert engine.current_scene == "lofi"
        assert param(loaded_registry, "stereo_widener", "wet") == 0.0
        assert param(loaded_registry, "stereo_widener", "width") == pytest.approx(0.5)
        assert param(loaded_registry, "reverb", "wet") == 0.0
        assert param(loaded_registry, "eq3", "low") == pytest.approx(-12.0)
        assert param(loaded_registry, "chorus", "wet") == pytest.approx(0.3)

    def test_latest_request_wins(self, engine, loaded_registry, scheduler):
        engine.request_scene("anxiety")
        scheduler.advance(0.05)
        engine.request_scene("horror")
        scheduler.advance(6.0)

        assert engine.current_scene == "horror"
        assert param(loaded_registry, "tremolo", "wet") == pytest.approx(0.07)
        assert param(loaded_registry, "distortion", "wet") == 0.0
        assert param(loaded_registry, "feedback_delay", "wet") == 0.0
        assert loaded_registry.source.playback_rate == 0.972

    def test_back_to_back_after_apply(self, engine, loaded_registry, scheduler):
        engine.request_scene("anxiety")
        scheduler.advance(1.0)
        assert param(loaded_registry, "distortion", "wet") == pytest.approx(0.1)

        engine.request_scene("horror")
        scheduler.advance(6.0)
        assert param(loaded_registry, "distortion", "wet") == 0.0
        assert param(loaded_registry, "tremolo", "frequency") == pytest.approx(2.0)
        assert param(loaded_registry, "tremolo", "depth") == pytest.approx(0.8)
        assert loaded_registry.source.playback_rate == 0.972
        assert scheduler.pending == 0

    def test_rapid_requests_leave_one_pending_apply(self, engine, scheduler):
        for name in ("epic", "lofi", "panic", "cold", "warmth"):
            engine.request_scene(name)
        assert engine.pending.scene.name == "warmth"

        scheduler.advance(0.2)
        assert engine.current_scene == "warmth"

    def test_unknown_scene_is_ignored(self, engine, loaded_registry, scheduler):
        before = loaded_registry.snapshot()
        assert not engine.request_scene("boss_fight")
        assert engine.pending is None
        assert scheduler.pending == 0
        assert loaded_registry.snapshot() == before

    def test_nothing_loaded_is_ignored(self, registry, scheduler):
        engine = SceneTransitionEngine(registry, scheduler)
        assert not engine.request_scene("epic")
        assert not engine.reset_to_baseline()
        assert scheduler.pending == 0

    def test_scene_may_name_unknown_parameters(self, loaded_registry, scheduler):
        scene = Scene("odd", "Odd", directives=(
            Directive("reverb", "shimmer", 1.0),
            Directive("no_such_unit", "wet", 1.0, 1.0),
            Directive("reverb", "wet", 0.4),
        ))
        engine = SceneTransitionEngine(loaded_registry, scheduler,
                                       catalog={"odd": scene})
        engine.request_scene("odd")
        scheduler.advance(0.2)
        assert engine.current_scene == "odd"
        assert param(loaded_registry, "reverb", "wet") == pytest.approx(0.4)


class TestReset:
    """Returning to the neutral baseline."""

    def test_reset_restores_every_default(self, engine, loaded_registry, scheduler):
        engine.request_scene("dirty")
        scheduler.advance(2.0)
        engine.reset_to_baseline()
        scheduler.advance(6.0)

        assert engine.current_scene is None
        assert_at_baseline(loaded_registry)

    def test_round_trip_through_epic(self, engine, loaded_registry, scheduler):
        engine.request_scene("epic")
        scheduler.advance(6.0)
        engine.reset_to_baseline()
        scheduler.advance(6.0)
        assert_at_baseline(loaded_registry)

    def test_reset_is_idempotent(self, engine, loaded_registry, scheduler):
        engine.request_scene("retro")
        scheduler.advance(2.0)
        engine.reset_to_baseline()
        scheduler.advance(6.0)
        once = loaded_registry.snapshot()

        engine.reset_to_baseline()
        engine.reset_to_baseline()
        scheduler.advance(6.0)
        assert loaded_registry.snapshot() == once

    def test_reset_cancels_pending_apply(self, engine, loaded_registry, scheduler):
        engine.request_scene("epic")
        scheduler.advance(0.05)
        engine.reset_to_baseline()
        scheduler.advance(6.0)

        assert engine.current_scene is None
        assert engine.pending is None
        assert_at_baseline(loaded_registry)

    def test_baseline_covers_whole_chain(self, loaded_registry):
        assert set(BASELINE_DEFAULTS) == {u.name for u in loaded_registry.units}


class TestSignals:
    """External signal entry point."""

    def test_reset_signal(self, engine, scheduler):
        engine.send_signal("epic")
        scheduler.advance(1.0)
        assert engine.send_signal("reset")
        assert engine.current_scene is None

    def test_scene_signal(self, engine, scheduler):
        assert engine.send_signal("panic")
        scheduler.advance(0.2)
        assert engine.current_scene == "panic"

    def test_unknown_signal(self, engine, scheduler, caplog):
        assert engine.send_signal("horror")
        pending = engine.pending
        with caplog.at_level(logging.WARNING):
            assert not engine.send_signal("not-a-scene")
        assert "not-a-scene" in caplog.text
        assert engine.pending is pending
        scheduler.advance(0.2)
        assert engine.current_scene == "horror"

    def test_every_catalog_scene_is_accepted(self, engine, scheduler):
        for name in SCENES:
            assert engine.send_signal(name)
            scheduler.advance(0.2)
            assert engine.current_scene == name


class TestStateLog:
    """Delayed logging of the active effects."""

    def test_active_units_logged_after_apply(self, engine, scheduler, caplog):
        with caplog.at_level(logging.INFO, logger="moodfx.transitions"):
            engine.request_scene("horror")
            scheduler.advance(3.0)
        assert "[ON] REVERB" in caplog.text
        assert "[ON] BIT_CRUSHER" in caplog.text

    def test_bypassed_logged_after_reset(self, engine, scheduler, caplog):
        with caplog.at_level(logging.INFO, logger="moodfx.transitions"):
            engine.reset_to_baseline()
            scheduler.advance(1.0)
        assert "all effects bypassed" in caplog.text

    def test_close_cancels_everything(self, engine, scheduler):
        engine.request_scene("epic")
        engine.close()
        scheduler.advance(1.0)
        assert engine.current_scene is None
        assert scheduler.pending == 0

    def test_stale_log_callback_keeps_newer_one_cancellable(self, engine, scheduler,
                                                            caplog, monkeypatch):
        scheduled = []
        schedule = scheduler.call_later

        def recording(delay, callback, *args):
            scheduled.append((callback, args))
            return schedule(delay, callback, *args)

        monkeypatch.setattr(scheduler, "call_later", recording)
        engine.reset_to_baseline()
        stale_callback, stale_args = scheduled[-1]
        engine.reset_to_baseline()
        with caplog.at_level(logging.INFO, logger="moodfx.transitions"):
            # a superseded log firing late must not orphan the newer one
            stale_callback(*stale_args)
            engine.close()
            scheduler.advance(1.0)
        assert "current effect state" not in caplog.text


class TestListeners:
    """Scene events for observers such as the control server."""

    def test_events_in_order(self, engine, scheduler):
        events = []
        engine.add_listener(lambda kind, scene: events.append((kind, scene)))
        engine.request_scene("epic")
        engine.send_signal("boss")
        scheduler.advance(0.2)
        engine.reset_to_baseline()
        assert events == [("requested", "epic"), ("ignored", "boss"),
                          ("applied", "epic"), ("reset", "")]

    def test_failing_listener_is_contained(self, engine, scheduler):
        seen = []

        def broken(kind, scene):
            raise RuntimeError(kind)

        engine.add_listener(broken)
        engine.add_listener(lambda kind, scene: seen.append(kind))
        assert engine.request_scene("epic")
        scheduler.advance(0.2)
        assert engine.current_scene == "epic"
        assert seen == ["requested", "applied"]

    def test_removed_listener_is_silent(self, engine):
        events = []

        def listener(kind, scene):
            events.append(kind)

        engine.add_listener(listener)
        engine.remove_listener(listener)
        engine.request_scene("epic")
        assert events == []
