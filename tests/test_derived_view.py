import os
import sys

# Agregar el path para importar módulos
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../")))

import math
import pytest

from libs.config.config_variables import FALLBACK_COLOR
from modules.feed_monitor.app_state import AppState
from modules.seismic_analysis.seismic_event import SeismicEvent
from modules.view_state.derived_view import (
    DerivedViewState,
    ViewParams,
    ViewSummary,
    build_globe_points,
    build_overview_points,
    color_domain,
    color_scale,
    compute_summary,
    filter_events,
)


def make_event(event_id, magnitude, depth=10.0, **kwargs):
    return SeismicEvent(
        event_id=event_id,
        place=f"place {event_id}",
        magnitude=magnitude,
        depth=depth,
        latitude=1.0,
        longitude=2.0,
        time=0,
        **kwargs,
    )


@pytest.fixture
def events():
    return [
        make_event("a", 1.0, depth=5.0, nst=20.0, gap=90.0),
        make_event("b", 3.0, depth=50.0),
        make_event("c", 5.5, depth=300.0, nst=100.0),
    ]


class TestFilterAndSummary:
    def test_threshold_is_inclusive(self, events):
        assert [e.event_id for e in filter_events(events, 3.0)] == ["b", "c"]

    def test_summary(self, events):
        summary = compute_summary(events)

        assert summary.count == 3
        assert summary.max_magnitude == 5.5
        assert summary.mean_magnitude == pytest.approx(9.5 / 3)

    def test_empty_summary_is_zero(self):
        assert compute_summary([]) == ViewSummary(0, 0.0, 0.0)

    def test_max_magnitude_floor_is_zero(self):
        summary = compute_summary([make_event("n", -0.5)])

        assert summary.max_magnitude == 0.0
        assert summary.mean_magnitude == -0.5


class TestColorScale:
    def test_ramp_endpoints_and_middle(self):
        assert color_scale(0.0, 0.0, 1.0) == "rgb(54,193,255)"
        assert color_scale(0.5, 0.0, 1.0) == "rgb(255,159,10)"
        assert color_scale(1.0, 0.0, 1.0) == "rgb(255,59,48)"

    def test_interpolation_rounds_half_up(self):
        assert color_scale(0.25, 0.0, 1.0) == "rgb(155,176,133)"

    def test_values_are_clamped(self):
        assert color_scale(-5.0, 0.0, 1.0) == "rgb(54,193,255)"
        assert color_scale(50.0, 0.0, 1.0) == "rgb(255,59,48)"

    @pytest.mark.parametrize("value", [None, math.nan, math.inf])
    def test_missing_values_use_fallback(self, value):
        assert color_scale(value, 0.0, 1.0) == FALLBACK_COLOR

    def test_degenerate_domain_does_not_divide_by_zero(self):
        assert color_scale(2.0, 2.0, 2.0) == "rgb(54,193,255)"


class TestGlobePoints:
    def test_color_domain_floors(self, events):
        assert color_domain(events, "magnitude") == (0.0, 5.5)
        assert color_domain([], "magnitude") == (0.0, 1.0)
        assert color_domain([make_event("x", 0.2)], "magnitude") == (0.0, 1.0)
        assert color_domain([make_event("x", 1.0, depth=-2.0)], "depth") == (-2.0, 1.0)

    def test_height_scaling(self, events):
        points = build_globe_points(events, ViewParams(height_field="nst"))
        assert [p.altitude for p in points] == [0.2, 0.0, 1.0]

        points = build_globe_points(events, ViewParams(height_field="depth"))
        assert [p.altitude for p in points] == [5.0, 50.0, 300.0]

    def test_color_by_magnitude(self, events):
        points = build_globe_points(events, ViewParams())

        assert points[0].color == color_scale(1.0, 0.0, 5.5)
        assert points[-1].color == "rgb(255,59,48)"

    def test_missing_color_field_uses_fallback(self, events):
        points = build_globe_points(events, ViewParams(color_field="gap"))

        assert points[0].color == "rgb(255,59,48)"
        assert points[1].color == FALLBACK_COLOR
        assert points[2].color == FALLBACK_COLOR

    def test_explicit_color_domain(self, events):
        points = build_globe_points(events, ViewParams(color_domain=(0.0, 1.0)))
        assert {p.color for p in points[1:]} == {"rgb(255,59,48)"}

    def test_point_identity_and_label(self, events):
        point = build_globe_points(events, ViewParams())[2]

        assert (point.event_id, point.lat, point.lng) == ("c", 1.0, 2.0)
        assert point.label == "place c - mag 5.5"

    def test_overview_points(self, events):
        colors = [p.color for p in build_overview_points(events)]
        assert colors == ["orange", "orange", "orangered"]

    def test_invalid_field_is_rejected(self):
        with pytest.raises(ValueError):
            ViewParams(color_field="rms")


class TestDerivedViewState:
    def test_recomputes_from_published_state(self, events):
        state = AppState()
        view = DerivedViewState(state, ViewParams(min_magnitude=2.0))
        assert view.summary == ViewSummary()

        state.publish_events(events)

        assert [e.event_id for e in view.filtered] == ["b", "c"]
        assert view.summary.count == 2
        assert len(view.globe_points) == 2
        assert len(view.overview_points) == 3

    def test_update_params_validates(self, events):
        view = DerivedViewState(AppState())

        assert view.update_params(min_magnitude=4.0).min_magnitude == 4.0
        with pytest.raises(ValueError):
            view.update_params(height_field="time")

    def test_selected_point_id(self, events):
        state = AppState()
        view = DerivedViewState(state)
        state.publish_events(events)

        assert view.selected_point_id is None
        state.select_event("b")
        assert view.selected_point_id == "b"

    def test_metadata_prints_summary(self, events, capsys):
        state = AppState()
        state.publish_events(events)

        DerivedViewState(state).metadata
        output = capsys.readouterr().out

        assert "Eventos" in output
        assert "5.5" in output
