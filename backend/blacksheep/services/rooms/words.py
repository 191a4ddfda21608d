import random
from typing import List, NamedTuple, Optional, Sequence


class WordPair(NamedTuple):
    category: str
    main: str
    imposter: str


class Assignment(NamedTuple):
    imposter_id: str
    pair: WordPair
    used_categories: List[str]


WORD_PAIRS: List[WordPair] = [
    WordPair('drinks', 'Coffee', 'Tea'),
    WordPair('pets', 'Cat', 'Dog'),
    WordPair('fruit', 'Apple', 'Pear'),
    WordPair('seasons', 'Summer', 'Spring'),
    WordPair('breakfast', 'Pancake', 'Waffle'),
    WordPair('instruments', 'Guitar', 'Violin'),
    WordPair('transport', 'Train', 'Bus'),
    WordPair('sports', 'Football', 'Rugby'),
    WordPair('weather', 'Rain', 'Snow'),
    WordPair('furniture', 'Sofa', 'Armchair'),
    WordPair('desserts', 'Ice Cream', 'Frozen Yogurt'),
    WordPair('places', 'Beach', 'Desert'),
    WordPair('jobs', 'Doctor', 'Nurse'),
    WordPair('space', 'Moon', 'Sun'),
    WordPair('clothing', 'Jacket', 'Sweater'),
    WordPair('kitchen', 'Fork', 'Spoon'),
    WordPair('fast_food', 'Burger', 'Sandwich'),
    WordPair('sea_life', 'Shark', 'Dolphin'),
    WordPair('school', 'Pencil', 'Pen'),
    WordPair('buildings', 'Castle', 'Palace'),
    WordPair('games', 'Chess', 'Checkers'),
    WordPair('birds', 'Eagle', 'Hawk'),
    WordPair('cinema', 'Popcorn', 'Nachos'),
    WordPair('music', 'Piano', 'Keyboard'),
]


def choose_word_pair(used_categories: Sequence[str], rng: Optional[random.Random] = None,
                     pool: Sequence[WordPair] = WORD_PAIRS):
    """Pick a pair whose category has not been used yet.

    Once every category has been used the used set starts over. Returns the
    pair and the updated list of used categories.
    """
    rng = rng or random
    used = list(used_categories or [])
    available = [p for p in pool if p.category not in used]
    if not available:
        used = []
        available = list(pool)
    pair = rng.choice(available)
    used.append(pair.category)
    return pair, used


def assign_words(player_ids: Sequence[str], used_categories: Sequence[str],
                 rng: Optional[random.Random] = None, pool: Sequence[WordPair] = WORD_PAIRS) -> Assignment:
    """Choose the imposter among ``player_ids`` and the word pair for the round."""
    if not player_ids:
        raise ValueError('Word assignment needs at least one player')
    rng = rng or random
    imposter_id = rng.choice(list(player_ids))
    pair, used = choose_word_pair(used_categories, rng=rng, pool=pool)
    return Assignment(imposter_id=imposter_id, pair=pair, used_categories=used)


def word_for(assignment: Assignment, player_id: str) -> str:
    if player_id == assignment.imposter_id:
        return assignment.pair.imposter
    return assignment.pair.main
