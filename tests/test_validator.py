import math                                            # nextafter for one-ULP boundary checks

from cardiorisk.models.feature_spec import FEATURE_SPECS, SAMPLE_PATIENTS
from cardiorisk.models.risk_model import find_violations, validate

LOWER_BOUNDS = [spec.valid_min for spec in FEATURE_SPECS]
UPPER_BOUNDS = [spec.valid_max for spec in FEATURE_SPECS]


def with_value(vector, index, value):
    """Copy of ``vector`` with one position replaced."""
    values = list(vector)
    values[index] = value
    return values


def test_sample_patients_pass():
    assert validate(SAMPLE_PATIENTS["high_risk"])
    assert validate(SAMPLE_PATIENTS["low_risk"])


def test_bounds_are_inclusive():
    assert validate(LOWER_BOUNDS)                      # Every value exactly at validMin
    assert validate(UPPER_BOUNDS)                      # Every value exactly at validMax


def test_one_ulp_beyond_either_bound_fails():
    for index, spec in enumerate(FEATURE_SPECS):
        below = math.nextafter(spec.valid_min, -math.inf)
        above = math.nextafter(spec.valid_max, math.inf)
        assert not validate(with_value(LOWER_BOUNDS, index, below))
        assert not validate(with_value(UPPER_BOUNDS, index, above))


def test_chest_pain_code_above_range_fails():
    vector = with_value(SAMPLE_PATIENTS["high_risk"], 2, 5)  # cp=5, validMax=4
    assert not validate(vector)

    violations = find_violations(vector)
    assert len(violations) == 1
    assert violations[0].kind == "range"
    assert violations[0].key == "cp"
    assert violations[0].upper == 4


def test_wrong_length_is_a_shape_failure():
    vector = list(SAMPLE_PATIENTS["low_risk"])[:12]    # Missing one feature
    assert not validate(vector)

    violations = find_violations(vector)
    assert [v.kind for v in violations] == ["shape"]
    assert not validate(list(SAMPLE_PATIENTS["low_risk"]) + [0.0])


def test_every_offending_index_is_reported():
    vector = with_value(SAMPLE_PATIENTS["low_risk"], 0, 150)
    vector = with_value(vector, 12, 0)
    assert [v.index for v in find_violations(vector)] == [0, 12]


def test_non_finite_values_fail():
    assert not validate(with_value(SAMPLE_PATIENTS["low_risk"], 4, math.nan))
    assert not validate(with_value(SAMPLE_PATIENTS["low_risk"], 4, math.inf))


def test_input_is_not_mutated():
    vector = list(SAMPLE_PATIENTS["high_risk"])
    snapshot = list(vector)
    validate(vector)
    assert vector == snapshot


def test_violation_dict_drops_unset_fields():
    shape = find_violations([1.0])[0].to_dict()
    assert set(shape) == {"kind", "message"}

    ranged = find_violations(with_value(LOWER_BOUNDS, 0, -1))[0].to_dict()
    assert ranged["lower"] == 0                        # Zero bound is kept, not dropped
    assert ranged["value"] == -1.0
