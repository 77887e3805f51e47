import pytest

from jobcrawler.core.transforms import (
    TransformationRegistry,
    apply_transformations,
    parse_leading_int,
    transformation,
)


@pytest.mark.parametrize(
    'names,value,expected',
    [
        (['trim'], '  Engineer \n', 'Engineer'),
        (['lowercase'], 'Full-Time', 'full-time'),
        (['uppercase'], 'usd', 'USD'),
        (['remove_commas'], '120,000', '120000'),
        (['strip_html'], '<p>Build <b>things</b></p>', 'Build things'),
        (['strip_html'], 'plain text', 'plain text'),
        (['parse_int'], '$120,000 per year', '120000'),
        (['parse_int'], 'negotiable', 'negotiable'),
        (['parse_date'], '2025-03-01', '2025-03-01T00:00:00'),
        (['parse_date'], 'soon', 'soon'),
        (['trim', 'uppercase'], ' eur ', 'EUR'),
    ],
)
def test_builtin_transformations(names, value, expected):
    assert apply_transformations(value, names) == expected


def test_unknown_transformations_are_skipped():
    assert apply_transformations(' Value ', ['does_not_exist', 'trim']) == 'Value'


def test_custom_transformation_registration():
    @transformation('test_reverse')
    def reverse(value: str) -> str:
        return value[::-1]

    assert TransformationRegistry.get('test_reverse') is reverse
    assert 'test_reverse' in TransformationRegistry.get_all()
    assert apply_transformations('abc', ['test_reverse']) == 'cba'


def test_builtins_are_registered():
    names = TransformationRegistry.get_all()

    for name in ('trim', 'lowercase', 'uppercase', 'strip_html', 'remove_commas', 'parse_int', 'parse_date'):
        assert name in names


@pytest.mark.parametrize(
    'value,expected',
    [
        ('$120,000 - $150,000', 120000),
        ('1 500 EUR', 1500),
        ('up to 90k', 90),
        ('competitive', None),
        ('', None),
    ],
)
def test_parse_leading_int(value, expected):
    assert parse_leading_int(value) == expected
