from app.utils.backoff import compute_retry_delay


def test_linear_growth():
    assert compute_retry_delay(0, step=1.0) == 1.0
    assert compute_retry_delay(1, step=1.0) == 2.0
    assert compute_retry_delay(2, step=0.5) == 1.5


def test_default_step_from_policy():
    # retry_delay_seconds = 1.0
    assert compute_retry_delay(0) == 1.0
    assert compute_retry_delay(1) == 2.0


def test_negative_attempt_is_clamped():
    assert compute_retry_delay(-3, step=1.0) == 1.0


def test_zero_step_disables_waiting():
    assert compute_retry_delay(5, step=0) == 0.0
