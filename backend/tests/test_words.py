import random

import pytest

from blacksheep.services.rooms.words import WORD_PAIRS, WordPair, assign_words, choose_word_pair, word_for


def test_categories_are_unique():
    categories = [p.category for p in WORD_PAIRS]
    assert len(categories) == len(set(categories))


def test_imposter_is_drawn_from_supplied_ids():
    rng = random.Random(7)
    ids = ['a', 'b', 'c', 'd']
    for _ in range(50):
        assignment = assign_words(ids, [], rng=rng)
        assert assignment.imposter_id in ids


def test_words_follow_the_pair():
    assignment = assign_words(['a', 'b', 'c', 'd'], [], rng=random.Random(1))
    for pid in ['a', 'b', 'c', 'd']:
        expected = assignment.pair.imposter if pid == assignment.imposter_id else assignment.pair.main
        assert word_for(assignment, pid) == expected
    assert assignment.used_categories == [assignment.pair.category]


def test_no_category_repeats_until_pool_exhausted():
    rng = random.Random(3)
    used = []
    seen = []
    for _ in range(len(WORD_PAIRS)):
        pair, used = choose_word_pair(used, rng=rng)
        seen.append(pair.category)
    assert len(set(seen)) == len(WORD_PAIRS)

    # Pool exhausted: the used set starts over with the new pick
    pair, used = choose_word_pair(used, rng=rng)
    assert used == [pair.category]


def test_small_pool_wraps_around():
    pool = [WordPair('one', 'A', 'B'), WordPair('two', 'C', 'D')]
    rng = random.Random(0)
    first, used = choose_word_pair([], rng=rng, pool=pool)
    second, used = choose_word_pair(used, rng=rng, pool=pool)
    assert {first.category, second.category} == {'one', 'two'}
    third, used = choose_word_pair(used, rng=rng, pool=pool)
    assert used == [third.category]


def test_empty_player_list_is_rejected():
    with pytest.raises(ValueError):
        assign_words([], [])
