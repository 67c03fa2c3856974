"""
Verdicts, analysis quips and result-screen messages.
"""

import random
from dataclasses import asdict, dataclass, field
from typing import List, Optional

PET = 'PET'
COOK = 'COOK'
VERDICTS = (PET, COOK)

ANALYSIS_LINES = [
    "Consulting grandma's recipe book...",
    'Calculating moral ambiguity...',
    'Calling local butcher for advice...',
    'Cross-checking with National Pet Registry...',
    "Googling: 'Is it illegal to cook this?'...",
    'Weighing emotional attachment vs. seasoning potential...',
    'Accessing forbidden recipes...',
    'Loading emotional regret projections...',
    'Will Grandma Approve???...',
]

INITIAL_MESSAGE = "🤖 AI is deciding your pet's fate..."
CLASSIFYING_MESSAGE = '🤖 Analyzing image with AI vision...'

# Analyzing screen timeline (seconds)
INITIAL_DELAY = 1.5
CLASSIFY_HOLD = 1.0
LINE_INTERVAL = 2.0
FINAL_PAUSE = 0.5
LINE_COUNT = 4

# Presentation per verdict: text color, emoji, rotation in degrees
# (positive is clockwise, as in CSS)
VERDICT_STYLES = {
    PET: {'color': '#a78bfa', 'emoji': '🐾💜', 'rotation': 3},
    COOK: {'color': '#ef4444', 'emoji': '🔥🍽️', 'rotation': -2},
}

SPECIAL_MESSAGES = {
    'selfie': {
        'text': 'CANNIBALISM IS NOT ADVISED',
        'emoji': '🚫🍽️',
        'color': '#ef4444',
    },
    'other': {
        'text': 'THERE IS NOTHING HERE????',
        'emoji': '❓🤷‍♂️',
        'color': '#6b7280',
    },
}


def verdict_text(verdict):
    return f'{verdict} IT!'


def random_verdict(rng=None):
    rng = rng or random
    return PET if rng.random() > 0.5 else COOK


def pick_analysis_lines(rng=None, count=LINE_COUNT):
    """Pick `count` distinct quips in random order."""
    rng = rng or random
    lines = []
    for _ in range(min(count, len(ANALYSIS_LINES))):
        available = [line for line in ANALYSIS_LINES if line not in lines]
        lines.append(available[int(rng.random() * len(available))])
    return lines


def special_message(category):
    return SPECIAL_MESSAGES.get(category)


def show_normal_result(category):
    return special_message(category) is None and category in ('animal', 'human', None)


@dataclass
class AnalysisPlan:
    """What the analyzing screen shows and how the result screen ends up."""

    category: Optional[str]
    verdict: Optional[str] = None
    lines: List[str] = field(default_factory=list)
    special: Optional[dict] = None

    @property
    def duration(self):
        # Time from upload until the result screen appears
        if not self.lines:
            return INITIAL_DELAY + CLASSIFY_HOLD
        return INITIAL_DELAY + CLASSIFY_HOLD + LINE_INTERVAL * len(self.lines) + FINAL_PAUSE

    def line_schedule(self):
        """(start_time, line) pairs for the quip cycle."""
        start = INITIAL_DELAY + CLASSIFY_HOLD
        return [(start + i * LINE_INTERVAL, line) for i, line in enumerate(self.lines)]

    def to_dict(self):
        data = asdict(self)
        data['duration'] = self.duration
        data['verdict_text'] = verdict_text(self.verdict) if self.verdict else None
        return data


def plan_analysis(category, rng=None):
    """Build the analyzing sequence for a classified image.

    `category` is None when classification failed outright; that case
    gets the normal verdict flow.
    """
    rng = rng or random
    if category in ('selfie', 'other'):
        return AnalysisPlan(category=category, special=special_message(category))
    lines = pick_analysis_lines(rng)
    return AnalysisPlan(category=category, verdict=random_verdict(rng), lines=lines)
