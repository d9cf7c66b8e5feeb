from navigation.guidance.deviation import DeviationDetector


def test_two_off_then_on_does_not_deviate() -> None:
    detector = DeviationDetector(tolerance_m=30, debounce_count=3)

    assert detector.update(50) is True
    assert detector.update(50) is True
    assert detector.update(5) is True

    assert detector.off_route_count == 0
    assert not detector.is_deviated


def test_three_consecutive_off_route_fixes_deviate() -> None:
    detector = DeviationDetector(tolerance_m=30, debounce_count=3)

    results = [detector.update(50) for _ in range(3)]

    assert results == [True, True, False]
    assert detector.is_deviated


def test_tolerance_boundary_counts_as_on_route() -> None:
    detector = DeviationDetector(tolerance_m=30, debounce_count=1)

    assert detector.update(30.0) is True
    assert detector.update(30.01) is False


def test_reset_clears_counter() -> None:
    detector = DeviationDetector(tolerance_m=30, debounce_count=2)
    detector.update(100)
    detector.update(100)

    detector.reset()

    assert detector.off_route_count == 0
    assert not detector.is_deviated
