"""Tests for smoothed parameters and parameter channels."""

from types import SimpleNamespace

import pytest

from conftest import FakeUnit
from moodfx.channels import (
    ImmediateChannel,
    ManualInterpolatedChannel,
    RampableChannel,
    bind_channel,
)
from moodfx.params import SmoothedParam


class RateRecorder:
    """Plain-number playback rate that remembers every write."""

    def __init__(self, value=1.0):
        self._value = value
        self.writes = []

    @property
    def playback_rate(self):
        return self._value

    @playback_rate.setter
    def playback_rate(self, value):
        self._value = value
        self.writes.append(value)


class TestSmoothedParam:
    """Clock-driven linear ramps."""

    def test_ramp_follows_clock(self, scheduler):
        p = SmoothedParam(0.0, scheduler.time)
        p.ramp_to(1.0, 1.0)

        assert p.value == 0.0
        assert p.ramping
        scheduler.advance(0.25)
        assert p.value == pytest.approx(0.25)
        scheduler.advance(1.0)
        assert p.value == 1.0
        assert not p.ramping

    def test_new_ramp_starts_from_live_value(self, scheduler):
        p = SmoothedParam(0.0, scheduler.time)
        p.ramp_to(1.0, 1.0)
        scheduler.advance(0.5)
        p.ramp_to(0.0, 0.5)

        scheduler.advance(0.25)
        assert p.value == pytest.approx(0.25)
        scheduler.advance(0.25)
        assert p.value == 0.0

    def test_direct_set_cancels_ramp(self, scheduler):
        p = SmoothedParam(0.0, scheduler.time)
        p.ramp_to(1.0, 1.0)
        scheduler.advance(0.5)
        p.value = 0.2

        scheduler.advance(1.0)
        assert p.value == 0.2
        assert p.target == 0.2

    def test_zero_duration_is_immediate(self, scheduler):
        p = SmoothedParam(3.0, scheduler.time)
        p.ramp_to(5.0, 0)
        assert p.value == 5.0


class TestBindChannel:
    """Channel variant is chosen from the parameter itself."""

    @pytest.fixture
    def unit(self, scheduler):
        return FakeUnit("fx", scheduler.time, frequency=10.0, bits=8,
                        delay_time="8n", wet=0.0)

    def test_smoothed_param_gets_rampable_channel(self, unit):
        assert isinstance(bind_channel(unit, "frequency"), RampableChannel)

    def test_plain_int_and_token_get_immediate_channel(self, unit):
        assert isinstance(bind_channel(unit, "bits"), ImmediateChannel)
        assert isinstance(bind_channel(unit, "delay_time"), ImmediateChannel)

    def test_unknown_parameter_is_unbound(self, unit):
        assert bind_channel(unit, "resonance") is None
        assert bind_channel(unit, "name") is None

    def test_missing_unit_is_unbound(self):
        assert bind_channel(None, "wet") is None

    def test_immediate_channel_ignores_ramp_duration(self, unit):
        channel = bind_channel(unit, "bits")
        channel.ramp_to(4, 2.0)
        assert unit.bits == 4

    def test_rampable_channel_ramps(self, unit, scheduler):
        channel = bind_channel(unit, "wet")
        channel.ramp_to(1, 2.0)
        scheduler.advance(1.0)
        assert channel.value == pytest.approx(0.5)


class TestManualInterpolatedChannel:
    """Tick-driven interpolation for the plain-number playback rate."""

    @pytest.fixture
    def target(self):
        return RateRecorder(1.0)

    @pytest.fixture
    def channel(self, target, scheduler):
        return ManualInterpolatedChannel(target, "playback_rate", scheduler, tick=0.02)

    def test_lands_exactly_on_target(self, channel, target, scheduler):
        channel.ramp_to(0.985, 5.0)
        scheduler.advance(5.0)

        assert target.playback_rate == 0.985
        assert not channel.active
        assert scheduler.pending == 0

    def test_tick_count_matches_duration(self, channel, target, scheduler):
        channel.ramp_to(1.02, 1.0)
        scheduler.advance(2.0)
        assert len(target.writes) == 50

    def test_midpoint_is_linear(self, channel, target, scheduler):
        channel.ramp_to(0.9, 1.0)
        scheduler.advance(0.5)
        assert target.playback_rate == pytest.approx(0.95, abs=0.003)

    def test_never_overshoots(self, channel, target, scheduler):
        channel.ramp_to(1.015, 5.0)
        scheduler.advance(6.0)
        assert all(1.0 <= v <= 1.015 for v in target.writes)
        assert target.writes == sorted(target.writes)

    def test_only_one_interpolation_runs(self, channel, target, scheduler):
        channel.ramp_to(0.9, 1.0)
        scheduler.advance(0.5)
        channel.ramp_to(1.1, 1.0)

        assert scheduler.pending == 1
        scheduler.advance(2.0)
        assert target.playback_rate == 1.1
        assert scheduler.pending == 0

    def test_set_immediate_cancels_running_ramp(self, channel, target, scheduler):
        channel.ramp_to(0.9, 1.0)
        scheduler.advance(0.1)
        channel.set_immediate(1.0)

        scheduler.advance(2.0)
        assert target.playback_rate == 1.0
        assert scheduler.pending == 0

    def test_ramp_to_current_value_schedules_nothing(self, channel, scheduler):
        channel.ramp_to(1.0, 5.0)
        assert scheduler.pending == 0
        assert not channel.active

    def test_cancel_keeps_current_value(self, channel, target, scheduler):
        channel.ramp_to(0.5, 1.0)
        scheduler.advance(0.5)
        held = target.playback_rate
        channel.cancel()

        scheduler.advance(1.0)
        assert target.playback_rate == held

    def test_works_on_a_simple_attribute(self, scheduler):
        holder = SimpleNamespace(playback_rate=1.0)
        channel = ManualInterpolatedChannel(holder, "playback_rate", scheduler)
        channel.ramp_to(0.972, 5.0)
        scheduler.advance(5.0)
        assert holder.playback_rate == 0.972
