from geocsv.pipeline.pacer import Pacer


def test_pacer_sleeps_only_after_success_that_is_not_final():
    sleeps: list[float] = []
    pacer = Pacer(sleep=sleeps.append)

    assert pacer.wait_if_needed(True, False, 200) is True
    assert pacer.wait_if_needed(False, False, 200) is False
    assert pacer.wait_if_needed(True, True, 200) is False
    assert pacer.wait_if_needed(True, False, 0) is False
    assert pacer.wait_if_needed(True, False, -5) is False

    assert sleeps == [0.2]
    assert pacer.waits == 1
