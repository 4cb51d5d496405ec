from matches.utils import NO_MATCH, is_new_match, latest_match_id
from conftest import make_matchlist


def test_latest_match_id_is_head_of_list():
    assert latest_match_id(make_matchlist(1002, 1001)) == 1002


def test_latest_match_id_empty_list():
    assert latest_match_id([]) is None
    assert latest_match_id(None) is None


def test_same_head_is_not_new():
    assert is_new_match(1001, make_matchlist(1001, 1000)) is False


def test_different_head_is_new():
    assert is_new_match(1001, make_matchlist(1002, 1001)) is True


def test_first_match_after_start_is_new():
    assert is_new_match(NO_MATCH, make_matchlist(1001)) is True


def test_empty_list_never_new():
    assert is_new_match(NO_MATCH, []) is False
