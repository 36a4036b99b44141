import json

import pytest
from streamlit.testing.v1 import AppTest

import advisor
import config
from session import STEP_CALIBRATE, STEP_REPORT, STEP_UPLOAD

APP_PATH = "../app.py"
TIMEOUT = 30

ADVICE = {
    "explanation": "Your arch flattens when you load it.",
    "shoes": ["Brooks Adrenaline GTS 23", "ASICS Gel-Kayano 30", "Saucony Guide 17"],
    "exercise": {"name": "Towel curls", "instruction": "3 × 15 reps daily."},
}


class FakeResponse:

    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self._payload


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setattr(config, "GEMINI_API_KEY", "")
    monkeypatch.setattr(config, "SCAN_TICK_SECONDS", 0)
    at = AppTest.from_file(APP_PATH, default_timeout=TIMEOUT)
    at.secrets["GEMINI_API_KEY"] = ""
    return at


@pytest.fixture
def gemini(monkeypatch):
    calls = []

    def fake_post(url, **kwargs):
        calls.append(url)
        return FakeResponse({"candidates": [{"content": {"parts": [{"text": json.dumps(ADVICE)}]}}]})

    monkeypatch.setattr(config, "GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(advisor.requests, "post", fake_post)
    return calls


def _state(at):
    return at.session_state["stridelab"]


def _upload(at, data):
    at.run()
    at.file_uploader[0].set_value(("footprint.png", data, "image/png")).run()
    return at


def test_first_run_shows_upload(app):
    app.run()
    assert not app.exception
    assert _state(app).step == STEP_UPLOAD
    assert len(app.file_uploader) == 1


def test_unreadable_upload_shows_retry_hint(app):
    _upload(app, b"definitely not an image")
    assert not app.exception
    assert _state(app).step == STEP_UPLOAD
    assert "Unreadable image" in app.error[0].value
    assert any("Try another file" in m.value for m in app.markdown)


def test_upload_moves_to_calibration(app, footprint_png):
    _upload(app, footprint_png)
    assert not app.exception
    assert _state(app).step == STEP_CALIBRATE
    assert tuple(app.slider(key="heel_edges").value) == pytest.approx((30.0, 70.0))
    assert app.slider(key="arch_offset").value == pytest.approx(35.0)
    assert len(app.image) == 1


def test_repeated_edge_edits_all_apply(app, footprint_png):
    _upload(app, footprint_png)
    widths = []
    for right in (50.0, 60.0, 65.0, 55.0):
        app.slider(key="heel_edges").set_value((30.0, right)).run()
        assert not app.exception
        widths.append(_state(app).bands["heel"].width)
    assert widths == pytest.approx([20.0, 30.0, 35.0, 25.0])
    assert tuple(app.slider(key="heel_edges").value) == pytest.approx((30.0, 55.0))


def test_offset_and_position_sliders_move_band(app, footprint_png):
    _upload(app, footprint_png)
    app.slider(key="heel_offset").set_value(50.0).run()
    app.slider(key="heel_y").set_value(70.0).run()
    heel = _state(app).bands["heel"]
    assert heel.x == pytest.approx(50.0)
    assert heel.width == pytest.approx(40.0)
    assert heel.y == pytest.approx(70.0)


def test_offset_slider_is_clamped_and_written_back(app, footprint_png):
    _upload(app, footprint_png)
    app.slider(key="heel_offset").set_value(90.0).run()
    assert _state(app).bands["heel"].x == pytest.approx(60.0)
    assert app.slider(key="heel_offset").value == pytest.approx(60.0)


def test_display_controls_update_settings(app, footprint_png):
    _upload(app, footprint_png)
    app.slider(key="sensitivity").set_value(80).run()
    app.slider(key="sensitivity").set_value(20).run()
    app.radio(key="view_mode").set_value("image").run()
    disp = _state(app).display
    assert disp.sensitivity == 20
    assert disp.mode == "image"


def test_analysis_without_advisor_key(app, footprint_png):
    _upload(app, footprint_png)
    app.button(key="start_analysis").click().run()
    assert not app.exception
    state = _state(app)
    assert state.step == STEP_REPORT
    # default bands: SI = 30 / 40
    assert state.result.type_key == "flat"
    assert state.advisory is None
    assert not state.advisory_pending
    assert app.button(key="choose_model").proto.disabled
    assert len(app.radio) == 0


def test_analysis_with_advice(app, gemini, footprint_png):
    _upload(app, footprint_png)
    app.slider(key="heel_edges").set_value((20.0, 70.0)).run()
    app.button(key="start_analysis").click().run()
    assert not app.exception
    state = _state(app)
    assert state.step == STEP_REPORT
    # CSI = 30/60, SI = 30/50
    assert state.result.type_key == "neutral"
    assert len(gemini) == 1
    assert state.selected_shoe == "Brooks Adrenaline GTS 23"

    app.radio(key="shoe_choice").set_value("Saucony Guide 17").run()
    assert _state(app).selected_shoe == "Saucony Guide 17"
    assert "Saucony" in _state(app).shopping_link()
    assert len(gemini) == 1


def test_adjust_bands_returns_to_calibration(app, footprint_png):
    _upload(app, footprint_png)
    app.button(key="start_analysis").click().run()
    app.button(key="adjust_bands").click().run()
    assert not app.exception
    state = _state(app)
    assert state.step == STEP_CALIBRATE
    assert not state.bands_frozen
    assert state.image is not None


def test_reset_returns_to_upload(app, footprint_png):
    _upload(app, footprint_png)
    app.button(key="reset").click().run()
    assert not app.exception
    assert _state(app).step == STEP_UPLOAD
    assert _state(app).image is None
