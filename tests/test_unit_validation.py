from app.services.registration import RegistrationForm, validate_registration


def _form(**overrides) -> RegistrationForm:
    data = dict(
        name="Jane Doe",
        email="jane@x.com",
        phone="0891112222",
        affiliate_code="JANE2222",
        pdpa_consent=True,
    )
    data.update(overrides)
    return RegistrationForm(**data)


def test_valid_form_has_no_errors():
    assert validate_registration(_form()) == {}


def test_formatted_phone_is_accepted():
    assert validate_registration(_form(phone="089-111-2222")) == {}
    assert validate_registration(_form(phone="89 111 2222")) == {}


def test_phone_digit_bounds():
    assert "phone" in validate_registration(_form(phone="12345678"))
    assert "phone" in validate_registration(_form(phone="012345678901"))


def test_code_format():
    assert "affiliateCode" in validate_registration(_form(affiliate_code="ab123"))
    assert "affiliateCode" in validate_registration(_form(affiliate_code="AB"))
    assert "affiliateCode" in validate_registration(_form(affiliate_code="ABCDEFGHIJK"))
    assert "affiliateCode" in validate_registration(_form(affiliate_code="JANE-22"))


def test_every_failing_field_is_reported():
    errors = validate_registration(
        RegistrationForm(name=" ", email="not-an-email", phone="12", affiliate_code="x", pdpa_consent=False)
    )
    assert set(errors) == {"name", "email", "phone", "affiliateCode", "pdpaConsent"}
