from cloudsweep.unique_id import unique_id

BASE_62 = set("0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz")


def test_length_is_six():
    assert len(unique_id()) == 6


def test_only_base62_characters():
    for _ in range(200):
        assert set(unique_id()) <= BASE_62


def test_values_vary():
    values = {unique_id() for _ in range(100)}
    assert len(values) > 90