from app.services.access import evaluate_access
from app.services.attempt_ledger import build_ledger


def _ledger(scores, extras=0, passing=70):
    return build_ledger(
        scores,
        extras,
        passing,
        base_attempts=3,
        unlimited_sentinel=999,
        correction_min_failed=3,
        extra_attempt_cost=10,
    )


def test_fresh_pair():
    led = _ledger([])
    assert led.remaining_attempts == 3
    assert led.total_allowed == 3
    assert led.can_retry is True
    assert led.is_completed is False
    assert led.can_view_correction is False
    assert led.can_purchase_extra_attempt is False
    assert led.best_score is None


def test_three_failures_complete_the_pair():
    led = _ledger([10, 20, 69])
    assert led.failed_attempts == 3
    assert led.remaining_attempts == 0
    assert led.is_completed is True
    assert led.can_retry is False
    assert led.can_view_correction is True
    assert led.can_purchase_extra_attempt is True


def test_purchase_reopens_one_slot():
    led = _ledger([10, 20, 30], extras=1)
    assert led.total_allowed == 4
    assert led.remaining_attempts == 1
    assert led.is_completed is False
    assert led.can_retry is True
    assert led.can_purchase_extra_attempt is False
    assert led.can_view_correction is True


def test_pass_means_unlimited_replays():
    led = _ledger([40, 70, 10, 5, 0])
    assert led.has_passed is True
    assert led.passed_attempts == 1
    assert led.remaining_attempts == 999
    assert led.is_completed is True
    assert led.can_retry is True
    assert led.can_view_correction is True
    assert led.can_purchase_extra_attempt is False
    assert led.best_score == 70


def test_remaining_never_negative():
    led = _ledger([0, 0, 0, 0, 0])
    assert led.remaining_attempts == 0


def test_ledger_is_a_pure_projection():
    history = [55, 30, 80]
    assert _ledger(history, extras=2) == _ledger(list(history), extras=2)


def test_defaults_come_from_settings(monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "base_attempts", 5)
    monkeypatch.setattr(settings, "extra_attempt_cost", 25)
    led = build_ledger([0], 0, 70)
    assert led.total_allowed == 5
    assert led.remaining_attempts == 4
    assert led.extra_attempt_cost == 25


def test_access_gate():
    locked = evaluate_access(20, 5)
    assert locked.is_unlocked is False
    assert locked.stars_needed == 15

    open_ = evaluate_access(20, 25)
    assert open_.is_unlocked is True
    assert open_.stars_needed == 0

    free = evaluate_access(0, 0)
    assert free.is_unlocked is True
