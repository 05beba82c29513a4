"""Tests for slugify, date parsing and opaque values."""

import pytest
from datetime import date, datetime, timezone, timedelta

from inkpost_pkg.utils import slugify, normalize_term, parse_date, to_opaque, strip_date_prefix, EPOCH


class TestSlugify:
    """Test cases for slug generation."""

    @pytest.mark.parametrize('text,expected', [
        ('Hello World', 'hello-world'),
        ('Rust Web', 'rust-web'),
        ('C++ Tips', 'cpp-tips'),
        ('C# and .NET', 'csharp-and-dotnet'),
        ('Rock & Roll', 'rock-and-roll'),
        ('me@home', 'meathome'),
        ('a + b', 'a-plus-b'),
        ('  spaced   out  ', 'spaced-out'),
        ('already--dashed---slug', 'already-dashed-slug'),
        ('Hello, World!', 'hello-world'),
        ('Café Déjà Vu', 'café-déjà-vu'),
        ('日本語 テスト', '日本語-テスト'),
        ('', ''),
    ])
    def test_slugify(self, text, expected):
        assert slugify(text) == expected

    @pytest.mark.parametrize('text', ['Hello World', 'C++ Tips', '  -x-  ', 'Ünïcode Tïtle', 'a&b#c'])
    def test_slugify_is_idempotent(self, text):
        once = slugify(text)
        assert slugify(once) == once

    def test_slug_never_starts_or_ends_with_dash(self):
        assert slugify('---hello---') == 'hello'


class TestNormalizeTerm:
    def test_trims_and_lowercases(self):
        assert normalize_term('  Rust ') == 'rust'

    def test_non_string_terms(self):
        assert normalize_term(2024) == '2024'


class TestParseDate:
    """Test cases for front matter date parsing."""

    def test_date_object_becomes_utc_midnight(self):
        assert parse_date(date(2024, 1, 15)) == datetime(2024, 1, 15, tzinfo=timezone.utc)

    def test_naive_datetime_is_utc(self):
        parsed = parse_date(datetime(2024, 1, 15, 10, 30))
        assert parsed.tzinfo == timezone.utc
        assert parsed.hour == 10

    def test_aware_datetime_keeps_offset(self):
        tz = timezone(timedelta(hours=2))
        parsed = parse_date(datetime(2024, 1, 15, 10, 30, tzinfo=tz))
        assert parsed.utcoffset() == timedelta(hours=2)

    def test_iso_string_with_z(self):
        assert parse_date('2024-01-15T10:00:00Z') == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)

    def test_plain_date_string(self):
        assert parse_date('2024-01-15') == datetime(2024, 1, 15, tzinfo=timezone.utc)

    def test_month_name_string(self):
        assert parse_date('Jan 15, 2024') == datetime(2024, 1, 15, tzinfo=timezone.utc)

    @pytest.mark.parametrize('value', ['yesterday', '2024-13-45', 12345, ['2024-01-01']])
    def test_invalid_values(self, value):
        with pytest.raises(ValueError):
            parse_date(value)

    def test_epoch_is_utc(self):
        assert EPOCH == datetime(1970, 1, 1, tzinfo=timezone.utc)


class TestToOpaque:
    """Test cases for the values passed through to templates untouched."""

    def test_scalars_pass_through(self):
        assert to_opaque('x') == 'x'
        assert to_opaque(3) == 3
        assert to_opaque(2.5) == 2.5
        assert to_opaque(True) is True
        assert to_opaque(None) is None

    def test_nested_structures_keep_order(self):
        value = {'b': [1, {'z': 1, 'a': 2}], 'a': 'x'}
        result = to_opaque(value)
        assert list(result) == ['b', 'a']
        assert list(result['b'][1]) == ['z', 'a']

    def test_dates_become_iso_strings(self):
        assert to_opaque({'when': date(2024, 1, 15)}) == {'when': '2024-01-15'}

    def test_tuples_become_lists(self):
        assert to_opaque((1, 2)) == [1, 2]

    def test_keys_become_strings(self):
        assert to_opaque({1: 'one'}) == {'1': 'one'}

    def test_rejects_unknown_types(self):
        with pytest.raises(ValueError, match='extra.bad'):
            to_opaque({'bad': object()}, 'extra')


class TestStripDatePrefix:
    def test_strips_prefix(self):
        assert strip_date_prefix('2024-01-15-hello') == 'hello'

    def test_leaves_other_stems(self):
        assert strip_date_prefix('hello-2024') == 'hello-2024'
