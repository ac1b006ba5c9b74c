import ipaddress

import pytest

from dynip import ObservedAddress, equal


ADDRESSES = [
    ObservedAddress(),
    ObservedAddress(ipv4='10.0.0.1'),
    ObservedAddress(ipv4='10.0.0.2'),
    ObservedAddress(ipv6='2001:db8::1'),
    ObservedAddress(ipv4='10.0.0.1', ipv6='2001:db8::1'),
]


@pytest.mark.parametrize('a', ADDRESSES)
def test_equal_reflexive(a):
    assert equal(a, a)
    assert equal(a, ObservedAddress(a.ipv4, a.ipv6))


@pytest.mark.parametrize('a', ADDRESSES)
@pytest.mark.parametrize('b', ADDRESSES)
def test_equal_symmetric_and_fieldwise(a, b):
    assert equal(a, b) == equal(b, a)
    assert equal(a, b) == (a.ipv4 == b.ipv4 and a.ipv6 == b.ipv6)


def test_different_families_never_equal():
    """An IPv4-only address never equals an IPv6-only address"""
    assert not equal(ObservedAddress(ipv4='1.2.3.4'),
                     ObservedAddress(ipv6='::ffff:1.2.3.4'))


def test_zero_value():
    zero = ObservedAddress()
    assert zero.is_empty()
    assert zero.primary is None
    assert zero.to_dict() == {}
    assert str(zero) == "v4=<EMPTY>, v6=<EMPTY>"


def test_immutable():
    a = ObservedAddress(ipv4='1.2.3.4')
    with pytest.raises(AttributeError):
        a.ipv4 = '5.6.7.8'


def test_primary_prefers_ipv4():
    assert ObservedAddress(ipv4='1.2.3.4', ipv6='2001:db8::1').primary == \
        '1.2.3.4'
    assert ObservedAddress(ipv6='2001:db8::1').primary == '2001:db8::1'


def test_str():
    assert str(ObservedAddress(ipv4='1.2.3.4')) == "v4=1.2.3.4, v6=<EMPTY>"


def test_from_ip():
    assert ObservedAddress.from_ip(ipaddress.IPv4Address('1.2.3.4')) == \
        ObservedAddress(ipv4='1.2.3.4')
    assert ObservedAddress.from_ip(
        ipaddress.IPv6Address('2001:0db8:0000::0001')
    ) == ObservedAddress(ipv6='2001:db8::1')


def test_dict_conversion_leaves_out_missing_families():
    a = ObservedAddress(ipv6='2001:db8::1')
    assert a.to_dict() == {'ipv6': '2001:db8::1'}
    assert ObservedAddress.from_dict(a.to_dict()) == a


@pytest.mark.parametrize('d', [
    [],
    {'ipv4': 1234},
    {'ipv4': 'not an address'},
    {'ipv4': '2001:db8::1'},
    {'ipv6': '1.2.3.4'},
    {'ipv4': '1.2.3.4', 'extra': 'key'},
])
def test_from_dict_malformed(d):
    with pytest.raises(ValueError):
        ObservedAddress.from_dict(d)
