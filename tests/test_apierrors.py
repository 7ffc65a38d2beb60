import pytest

from kubebind.apierrors import (
    AggregateError,
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    TooManyRequestsError,
    aggregate,
    is_retryable,
)


def test_aggregate_of_nothing_is_none():
    assert aggregate([]) is None
    assert aggregate([None, None]) is None


def test_aggregate_single_uses_its_message():
    err = NotFoundError("missing thing")
    agg = aggregate([None, err])
    assert agg.errors == (err,)
    assert str(agg) == str(err)


def test_aggregate_multiple_messages():
    agg = aggregate([ValueError("boom"), ValueError("bang")])
    assert len(agg) == 2
    assert str(agg) == "[boom, bang]"


def test_aggregate_deduplicates_messages():
    agg = aggregate([ValueError("dup"), ValueError("dup")])
    assert str(agg) == "dup"


def test_aggregate_flattens_nested():
    inner = aggregate([ValueError("a"), ValueError("b")])
    agg = aggregate([inner, ValueError("c")])
    assert str(agg) == "[a, b, c]"
    assert list(agg) == [inner, agg.errors[1]]


def test_aggregate_can_be_raised():
    agg = aggregate([ValueError("x"), ValueError("y")])
    with pytest.raises(AggregateError) as info:
        raise agg
    assert info.value is agg
    assert [str(e) for e in info.value.errors] == ["x", "y"]
    assert str(info.value) == "[x, y]"


def test_api_error_keeps_message():
    err = ConflictError("object changed")
    assert err.message == "object changed"
    assert str(err) == "object changed"


@pytest.mark.parametrize(
    "error, expected",
    [
        (ConflictError("c"), True),
        (TooManyRequestsError("t"), True),
        (ConnectionRefusedError("r"), True),
        (NotFoundError("n"), False),
        (AlreadyExistsError("a"), False),
        (ValueError("v"), False),
    ],
)
def test_is_retryable(error, expected):
    assert is_retryable(error) is expected


def test_is_retryable_follows_cause():
    try:
        try:
            raise ConflictError("conflict")
        except ConflictError as exc:
            raise RuntimeError("wrapped") from exc
    except RuntimeError as wrapped:
        assert is_retryable(wrapped) is True