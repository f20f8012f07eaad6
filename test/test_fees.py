import pytest

from codprofit.services.fee_service import calculate_service_fee

from conftest import cameroon, morocco


def test_fixed_fee_ignores_zero_percentage():
    assert calculate_service_fee("MA", 499, [morocco()]) == 30.0


def test_fee_combines_fixed_and_percentage():
    assert calculate_service_fee("CM", 10_000, [cameroon()]) == pytest.approx(510.0)


def test_fee_of_zero_total_is_the_fixed_fee():
    assert calculate_service_fee("CM", 0, [cameroon()]) == 10.0


def test_fee_is_deterministic():
    countries = [morocco(), cameroon()]
    assert calculate_service_fee("CM", 777.7, countries) == calculate_service_fee("CM", 777.7, countries)


def test_unknown_country_has_no_fee():
    assert calculate_service_fee("ZZ", 1000, [morocco()]) == 0.0
