import random

import pytest

from captions import DEFAULT_CAPTION, MAX_CUSTOM_CAPTION, REDDIT_CAPTIONS, CaptionError, final_caption
from verdict import (
    ANALYSIS_LINES,
    COOK,
    PET,
    plan_analysis,
    pick_analysis_lines,
    random_verdict,
    show_normal_result,
    special_message,
    verdict_text,
)


class FixedRandom:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def test_random_verdict_threshold():
    assert random_verdict(FixedRandom(0.51)) == PET
    assert random_verdict(FixedRandom(0.5)) == COOK
    assert random_verdict(FixedRandom(0.0)) == COOK


def test_verdict_text():
    assert verdict_text(PET) == 'PET IT!'
    assert verdict_text(COOK) == 'COOK IT!'


def test_analysis_lines_are_distinct():
    for seed in range(20):
        lines = pick_analysis_lines(random.Random(seed))
        assert len(lines) == 4
        assert len(set(lines)) == 4
        assert all(line in ANALYSIS_LINES for line in lines)


def test_analysis_lines_never_exceed_pool():
    lines = pick_analysis_lines(random.Random(0), count=50)
    assert sorted(lines) == sorted(ANALYSIS_LINES)


@pytest.mark.parametrize('category', ['animal', 'human', None])
def test_plan_for_verdict_flow(category):
    plan = plan_analysis(category, random.Random(3))
    assert plan.verdict in (PET, COOK)
    assert len(plan.lines) == 4
    assert plan.special is None
    assert plan.duration == pytest.approx(1.5 + 1.0 + 4 * 2.0 + 0.5)
    assert [start for start, _ in plan.line_schedule()] == [2.5, 4.5, 6.5, 8.5]


@pytest.mark.parametrize('category, text', [
    ('selfie', 'CANNIBALISM IS NOT ADVISED'),
    ('other', 'THERE IS NOTHING HERE????'),
])
def test_plan_for_special_results(category, text):
    plan = plan_analysis(category, random.Random(3))
    assert plan.verdict is None
    assert plan.lines == []
    assert plan.special['text'] == text
    assert plan.duration == pytest.approx(2.5)


def test_plan_to_dict():
    data = plan_analysis('animal', random.Random(5)).to_dict()
    assert data['verdict_text'] in ('PET IT!', 'COOK IT!')
    assert data['duration'] == pytest.approx(11.0)


def test_result_screen_flags():
    assert special_message('animal') is None
    assert special_message('selfie')['emoji'] == '🚫🍽️'
    assert show_normal_result('animal')
    assert show_normal_result('human')
    assert show_normal_result(None)
    assert not show_normal_result('selfie')
    assert not show_normal_result('other')


def test_final_caption_prefers_custom_text():
    assert final_caption(REDDIT_CAPTIONS[2], '  my own words  ') == 'my own words'


def test_final_caption_falls_back_to_selection():
    assert final_caption(REDDIT_CAPTIONS[3], '   ') == REDDIT_CAPTIONS[3]
    assert final_caption(None, None) == DEFAULT_CAPTION


def test_final_caption_rejects_long_custom_caption():
    with pytest.raises(CaptionError):
        final_caption(None, 'x' * (MAX_CUSTOM_CAPTION + 1))
    assert final_caption(None, 'x' * MAX_CUSTOM_CAPTION) == 'x' * MAX_CUSTOM_CAPTION


def test_final_caption_rejects_unknown_selection():
    with pytest.raises(CaptionError):
        final_caption('Free crypto here', '')


@pytest.mark.parametrize('selected, custom', [
    (None, 5),
    (3, ''),
    (['a list'], None),
    (None, {'text': 'hi'}),
])
def test_final_caption_rejects_non_text(selected, custom):
    with pytest.raises(CaptionError):
        final_caption(selected, custom)
