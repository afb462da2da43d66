"""Tests for the click-to-calibrate line projection."""

import pytest

from athletics_ai.calibration import LineCalibration, LinesCalibrator, check_collinearity, meter_values_for
from athletics_ai.errors import CalibrationError
from athletics_ai.geometry import Point2D


def _calibrated(points, kind="broad-jump", store=None, meter_values=None):
    calibrator = LinesCalibrator(store=store)
    calibrator.begin_calibration(kind, meter_values)
    for point in points:
        calibrator.add_point(point)
    return calibrator


class TestMeterValues:
    """Tests for the per-kind meter marks."""

    def test_defaults(self):
        """Each test kind has its ordered marks."""
        assert meter_values_for("broad-jump") == [0.0, 3.0]
        assert meter_values_for("sprint") == [0.0, 15.0, 30.0]
        assert meter_values_for("kick") == [0.0, 10.0]

    def test_unknown_kind(self):
        """Unknown kinds raise KeyError."""
        with pytest.raises(KeyError):
            meter_values_for("marathon")


class TestProjection:
    """Tests for pixel <-> meter projection."""

    def test_two_point_calibration(self):
        """Two clicks define scale, origin and direction."""
        c = _calibrated([(0, 0), (100, 0)])
        assert c.calibrated
        assert c.params.meters_per_pixel == pytest.approx(0.03)
        assert c.project_pixel_to_meters((50, 40)) == pytest.approx(1.5)
        end = c.project_meters_to_pixel(3.0)
        assert end.as_tuple() == pytest.approx((100.0, 0.0))

    def test_projection_round_trip_on_line(self):
        """Meters -> pixel -> meters is the identity along the line."""
        c = _calibrated([(10, 20), (310, 420)])
        pixel = c.project_meters_to_pixel(1.7)
        assert c.project_pixel_to_meters(pixel) == pytest.approx(1.7)

    def test_uses_first_and_last_points_only(self):
        """The middle mark does not influence the fit."""
        c = _calibrated([(0, 0), (333, 0), (600, 0)], kind="sprint")
        assert c.params.meters_per_pixel == pytest.approx(30 / 600)
        assert c.project_pixel_to_meters((300, 0)) == pytest.approx(15.0)

    def test_distance_is_along_line(self):
        """Perpendicular offsets do not add distance."""
        c = _calibrated([(0, 0), (100, 0)])
        assert c.distance_in_meters((10, 0), (60, 200)) == pytest.approx(1.5)

    def test_uncalibrated_returns_none(self):
        """Projections are unavailable before calibration."""
        c = LinesCalibrator()
        assert c.project_pixel_to_meters((1, 1)) is None
        assert c.project_meters_to_pixel(1.0) is None
        assert c.distance_in_meters((0, 0), (1, 1)) is None


class TestCalibrationFlow:
    """Tests for the click sequence, warnings and callbacks."""

    def test_zero_length_line(self):
        """Identical first and last clicks leave the kind uncalibrated."""
        c = _calibrated([(50, 50), (50, 50)])
        assert not c.calibrated
        assert not c.is_calibrating
        assert any("zero length" in str(w) for w in c.warnings)

    def test_non_collinear_warning_does_not_block(self):
        """A bent sprint layout is calibrated with a warning."""
        c = _calibrated([(0, 0), (300, 80), (600, 0)], kind="sprint")
        assert c.calibrated
        assert len(c.warnings) == 1

    def test_collinear_points(self):
        """Points on a line pass the collinearity check."""
        assert check_collinearity(Point2D(0, 0), Point2D(300, 0.01), Point2D(600, 0))
        assert not check_collinearity(Point2D(0, 0), Point2D(300, 80), Point2D(600, 0))

    def test_extra_click_ignored(self):
        """Clicks after completion do not change the calibration."""
        c = _calibrated([(0, 0), (100, 0)])
        params = c.params
        assert c.add_point((500, 500)) is False
        assert c.params == params

    def test_callbacks(self):
        """Point and completion callbacks fire in order."""
        seen = []
        c = LinesCalibrator()
        c.subscribe(on_point=lambda i, n, m: seen.append((i, n, m)), on_complete=lambda d: seen.append(d["test_type"]))
        c.begin_calibration("kick")
        assert c.add_point((0, 0)) is False
        assert c.add_point((500, 0)) is True
        assert seen == [(1, 2, 0.0), (2, 2, 10.0), "kick"]

    def test_reversed_marks(self):
        """Marks decreasing along the click order give a negative scale."""
        c = _calibrated([(0, 0), (100, 0)], meter_values=[3.0, 0.0])
        assert c.params.meters_per_pixel < 0
        assert c.project_pixel_to_meters((100, 0)) == pytest.approx(0.0)
        assert c.distance_in_meters((0, 0), (50, 0)) == pytest.approx(1.5)

    def test_cancel(self):
        """Cancelling drops the collected clicks."""
        c = LinesCalibrator()
        c.begin_calibration("sprint")
        c.add_point((0, 0))
        c.cancel_calibration()
        assert not c.is_calibrating
        assert c.points == []

    def test_cancel_restores_previous(self):
        """Cancelling a re-calibration keeps the completed one."""
        c = _calibrated([(0, 0), (100, 0)], kind="kick")
        c.begin_calibration("kick", [0.0, 5.0])
        assert c.calibrated
        c.add_point((7, 7))
        c.cancel_calibration()
        assert c.meter_values == [0.0, 10.0]
        assert c.points == [Point2D(0.0, 0.0), Point2D(100.0, 0.0)]
        assert c.project_pixel_to_meters((100, 0)) == pytest.approx(10.0)

    def test_needs_two_marks(self):
        """A single meter mark cannot define a line."""
        with pytest.raises(ValueError):
            LinesCalibrator().begin_calibration("kick", [5.0])


class TestPersistence:
    """Tests for saving and loading calibrations through the store."""

    def test_save_and_load(self, store):
        """A completed calibration is restored by a new calibrator."""
        _calibrated([(0, 0), (100, 0)], store=store)
        restored = LinesCalibrator(store=store)
        assert restored.load_calibration("broad-jump")
        assert restored.project_pixel_to_meters((50, 0)) == pytest.approx(1.5)
        assert restored.is_calibrated("broad-jump")
        assert not restored.is_calibrated("kick")

    def test_calibration_data_is_json_ready(self, store):
        """The persisted payload has points, marks and params."""
        c = _calibrated([(0, 0), (100, 0)], store=store)
        data = c.calibration_data()
        assert data["test_type"] == "broad-jump"
        assert data["points"] == [{"x": 0.0, "y": 0.0}, {"x": 100.0, "y": 0.0}]
        assert data["meter_values"] == [0.0, 3.0]
        assert store.load_calibration("broad-jump")["params"] == data["params"]

    def test_clear(self, store):
        """Clearing removes both the stored and in-memory calibration."""
        c = _calibrated([(0, 0), (100, 0)], store=store)
        c.clear_calibration("broad-jump")
        assert not c.calibrated
        assert store.load_calibration("broad-jump") is None

    def test_bad_payload(self):
        """Malformed params raise CalibrationError."""
        with pytest.raises(CalibrationError):
            LineCalibration.from_dict({"origin": {"x": 0, "y": 0}})
