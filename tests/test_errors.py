import pytest

import entityql
from entityql.errors import ErrorKind, QueryError, QueryResolutionError, Result


def test_ok_and_failed_results():
    ok = Result.ok(3)
    assert ok.is_ok and not ok.is_failed
    assert ok.error is None
    assert ok.unwrap() == 3

    bad = Result.fail(ErrorKind.NOT_FOUND, 'no entity Ghost')
    assert bad.is_failed
    assert bad.error == QueryError(ErrorKind.NOT_FOUND, 'no entity Ghost')
    assert str(bad.error) == 'no entity Ghost'


def test_unwrap_raises_with_kind():
    bad = Result.from_errors([QueryError(ErrorKind.DECODE_ERROR, 'bad cursor')])
    with pytest.raises(QueryResolutionError) as exc:
        bad.unwrap()
    assert exc.value.kind is ErrorKind.DECODE_ERROR
    assert 'bad cursor' in str(exc.value)


def test_from_errors_needs_an_error():
    with pytest.raises(ValueError):
        Result.from_errors([])


def test_lazy_exports():
    assert entityql.EntityQueryService.__name__ == 'EntityQueryService'
    assert entityql.Cursor().is_empty
    with pytest.raises(AttributeError):
        entityql.NotAThing
