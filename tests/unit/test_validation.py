import pytest

from jobcrawler.exceptions import SiteValidationError
from jobcrawler.models import CreateSiteInput, UpdateSiteInput
from jobcrawler.validation import SiteValidator, is_valid_url


@pytest.fixture
def validator():
    return SiteValidator()


@pytest.mark.parametrize(
    'value,expected',
    [
        ('https://example.com/jobs', True),
        ('http://localhost:8080', True),
        ('example.com/jobs', False),
        ('https://', False),
        ('', False),
        (None, False),
    ],
)
def test_is_valid_url(value, expected):
    assert is_valid_url(value) is expected


def test_validate_create_returns_parsed_input(validator, site_payload):
    payload = validator.validate_create(site_payload)

    assert isinstance(payload, CreateSiteInput)
    assert payload.extraction_rules.job_list_selector == 'li.job'
    assert payload.extraction_rules.fields['title'].required is True


@pytest.mark.parametrize(
    'field,value,message',
    [
        ('name', '  ', 'Site name is required'),
        ('base_url', 'not a url', 'Valid base URL is required'),
        ('backend_startup_id', '', 'Backend startup ID is required'),
        ('schedule', '', 'Schedule is required'),
    ],
)
def test_validate_create_rejects_missing_identity_fields(validator, site_payload, field, value, message):
    site_payload[field] = value

    with pytest.raises(SiteValidationError) as exc_info:
        validator.validate_create(site_payload)

    assert exc_info.value.message == message
    assert exc_info.value.field == field


def test_validate_create_reports_first_problem(validator):
    with pytest.raises(SiteValidationError, match='Site name is required'):
        validator.validate_create({})


def test_validate_create_rejects_invalid_structure(validator, site_payload):
    site_payload['pagination_config'] = {'type': 'query_param', 'max_pages': -3}

    with pytest.raises(SiteValidationError) as exc_info:
        validator.validate_create(site_payload)

    assert exc_info.value.field == 'pagination_config'
    assert 'max_pages' in exc_info.value.message


def test_validate_create_accepts_model(validator, site_payload):
    model = CreateSiteInput.model_validate(site_payload)

    assert validator.validate_create(model) is model


def test_validate_update_rejects_invalid_base_url(validator):
    with pytest.raises(SiteValidationError, match='Invalid base URL'):
        validator.validate_update({'base_url': 'ftp//broken'})


def test_validate_update_accepts_partial_changes(validator):
    update = validator.validate_update({'active': False})

    assert isinstance(update, UpdateSiteInput)
    assert update.changes() == {'active': False}


def test_validate_update_rejects_out_of_range_delay(validator):
    with pytest.raises(SiteValidationError) as exc_info:
        validator.validate_update({'request_delay': 600})

    assert exc_info.value.field == 'request_delay'


def test_validate_site_checks_merged_site(validator, make_site):
    validator.validate_site(make_site())

    with pytest.raises(SiteValidationError, match='Schedule is required'):
        validator.validate_site(make_site(schedule=' '))


def test_non_mapping_input_is_rejected(validator):
    with pytest.raises(SiteValidationError, match='expected a mapping'):
        validator.validate_create(['not', 'a', 'mapping'])


def test_blank_name_with_valid_url(validator):
    with pytest.raises(SiteValidationError, match='Site name is required'):
        validator.validate_create({'name': '', 'base_url': 'https://x.com'})


def test_name_with_malformed_url(validator):
    with pytest.raises(SiteValidationError, match='Valid base URL is required'):
        validator.validate_create({'name': 'Acme', 'base_url': 'not-a-url'})
