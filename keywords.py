"""Keyword lists used to score vision labels."""

# Animal-related keywords
ANIMAL_KEYWORDS = [
    'animal', 'dog', 'cat', 'bird', 'fish', 'horse', 'cow', 'pig', 'sheep', 'goat',
    'chicken', 'duck', 'rabbit', 'hamster', 'guinea pig', 'mouse', 'rat', 'ferret',
    'lizard', 'snake', 'turtle', 'frog', 'spider', 'insect', 'butterfly', 'bee',
    'lion', 'tiger', 'elephant', 'giraffe', 'zebra', 'monkey', 'bear', 'wolf',
    'fox', 'deer', 'squirrel', 'raccoon', 'skunk', 'opossum', 'bat', 'whale',
    'dolphin', 'shark', 'octopus', 'crab', 'lobster', 'shrimp', 'pet', 'wildlife',
    'mammal', 'reptile', 'amphibian', 'arthropod', 'mollusk', 'crustacean',
]

# Human-related keywords
HUMAN_KEYWORDS = [
    'person', 'human', 'people', 'man', 'woman', 'child', 'baby', 'adult',
    'face', 'head', 'body', 'hand', 'arm', 'leg', 'foot', 'hair', 'eye',
    'nose', 'mouth', 'ear', 'skin', 'clothing', 'shirt', 'pants', 'dress',
    'shoe', 'hat', 'glasses', 'smile', 'portrait',
]

# Selfie indicators (combined with face detection)
SELFIE_INDICATORS = [
    'selfie', 'self-portrait', 'close-up', 'headshot', 'facial expression',
    'smartphone', 'camera phone', 'mirror selfie', 'bathroom mirror',
]


def keyword_hit(label, keywords):
    """True when any keyword appears inside the (lower-cased) label.

    Matching is by substring, so 'cat' also hits 'cattle'.
    """
    label_lower = label.lower()
    return any(keyword in label_lower for keyword in keywords)
