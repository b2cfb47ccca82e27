"""Tests for IPv6Address parsing, formatting and arithmetic."""

import pickle
import random

import pytest

from ip6calc import (AddressValueError, IPv6Address, MAX_IPV6,
                     PrefixValueError, REVERSE_ZONE, _add, _add_big,
                     _add_fast, _sub_big, _sub_fast, distance)

MAX_U64 = 2**64 - 1


def rand_address_int(rng):
    """A random address integer outside ::ffff:0:0/96."""
    while True:
        v = rng.getrandbits(128)
        if v >> 32 != 0xffff:
            return v


class TestParse:
    def test_compressed(self):
        addr = IPv6Address('2001:db8::1')
        assert str(addr) == '2001:db8::1'
        assert addr.compressed == '2001:db8::1'

    def test_exploded(self):
        addr = IPv6Address('2001:db8::1')
        assert addr.exploded == '2001:0db8:0000:0000:0000:0000:0000:0001'

    def test_exploded_upper(self):
        addr = IPv6Address('2001:db8::1')
        assert addr.exploded_upper == '2001:0DB8:0000:0000:0000:0000:0000:0001'

    def test_full_form(self):
        addr = IPv6Address('2001:0DB8:0000:0000:0000:ff00:0042:8329')
        assert str(addr) == '2001:db8::ff00:42:8329'

    def test_strips_whitespace(self):
        assert IPv6Address('  2001:db8::1\n') == IPv6Address('2001:db8::1')

    @pytest.mark.parametrize('txt, expected', [
        ('::', '::'),
        ('::1', '::1'),
        ('1::', '1::'),
        ('1:2:3:4:5:6:7::', '1:2:3:4:5:6:7:0'),
        ('1:0:2:3:4:5:6:7', '1:0:2:3:4:5:6:7'),
        ('1:0:0:2:0:0:0:3', '1:0:0:2::3'),
        # equal runs: the leftmost one is compressed
        ('1:0:0:2:0:0:3:4', '1::2:0:0:3:4'),
        ('0:0:1:0:0:2:0:0', '::1:0:0:2:0:0'),
    ])
    def test_compression(self, txt, expected):
        assert str(IPv6Address(txt)) == expected

    @pytest.mark.parametrize('txt', [
        '',
        ':',
        'not-an-ip',
        '127.0.0.1',
        '::1.2.3.4',
        '::ffff:1.2.3.4',
        '1::2::3',
        '1:2:3:4:5:6:7:8:9',
        '1:2:3:4:5:6:7',
        '1:2:3:4::5:6:7:8',
        '12345::',
        'fe80::1%eth0',
        '2001:db8::/64',
    ])
    def test_invalid_text(self, txt):
        with pytest.raises(AddressValueError):
            IPv6Address(txt)

    def test_ipv4_mapped_text(self):
        with pytest.raises(AddressValueError):
            IPv6Address('::ffff:102:304')

    def test_invalid_type(self):
        with pytest.raises(AddressValueError):
            IPv6Address(1.5)
        with pytest.raises(AddressValueError):
            IPv6Address(True)


class TestConversions:
    def test_from_int(self):
        assert str(IPv6Address(1)) == '::1'
        assert int(IPv6Address(MAX_IPV6)) == MAX_IPV6

    @pytest.mark.parametrize('value', [-1, 2**128, 0xffff00000000,
                                       0xffff01020304])
    def test_from_int_invalid(self, value):
        with pytest.raises(AddressValueError):
            IPv6Address(value)

    def test_from_bytes(self):
        packed = bytes.fromhex('20010db8000000000000000000000001')
        addr = IPv6Address(packed)
        assert str(addr) == '2001:db8::1'
        assert addr.packed == packed

    @pytest.mark.parametrize('packed', [
        b'',
        b'\x00' * 15,
        b'\x00' * 17,
        bytes.fromhex('00000000000000000000ffff7f000001'),
    ])
    def test_from_bytes_invalid(self, packed):
        with pytest.raises(AddressValueError):
            IPv6Address(packed)

    def test_copy(self):
        addr = IPv6Address('2001:db8::1')
        assert IPv6Address(addr) == addr

    def test_round_trip(self):
        rng = random.Random(1)
        for _ in range(500):
            v = rand_address_int(rng)
            assert int(IPv6Address(str(IPv6Address(v)))) == v
            assert int(IPv6Address(IPv6Address(v).exploded)) == v

    def test_repr(self):
        assert repr(IPv6Address('2001:db8::1')) == "IPv6Address('2001:db8::1')"

    def test_pickle(self):
        addr = IPv6Address('2001:db8::1')
        assert pickle.loads(pickle.dumps(addr)) == addr

    def test_pickle_mapped_result(self):
        addr = IPv6Address('::fffe:ffff:ffff') + 1
        assert pickle.loads(pickle.dumps(addr)) == addr


class TestOrdering:
    def test_compare(self):
        a = IPv6Address('2001:db8::1')
        b = IPv6Address('2001:db8::2')
        assert a.compare(b) == -1
        assert b.compare(a) == 1
        assert a.compare(IPv6Address('2001:db8::1')) == 0
        assert a < b <= b and b > a >= a
        assert a != b

    def test_compare_type(self):
        with pytest.raises(TypeError):
            IPv6Address('::1').compare(1)
        assert IPv6Address('::1') != 1

    def test_sorting_matches_bytes(self):
        rng = random.Random(2)
        addrs = [IPv6Address(rand_address_int(rng)) for _ in range(100)]
        assert sorted(addrs) == sorted(addrs, key=lambda a: a.packed)

    def test_hashable(self):
        assert len({IPv6Address('::1'), IPv6Address('0::1')}) == 1


class TestArithmetic:
    def test_add_sub(self):
        addr = IPv6Address('2001:db8::1')
        b = addr.add(10)
        assert str(b) == '2001:db8::b'
        assert b.subtract(10) == addr
        assert addr + 10 == b and b - 10 == addr

    def test_negative_delta(self):
        addr = IPv6Address('2001:db8::10')
        assert addr.add(-16) == IPv6Address('2001:db8::')
        assert addr.subtract(-16) == IPv6Address('2001:db8::20')

    def test_carry_into_high_half(self):
        addr = IPv6Address('2001:db8::ffff:ffff:ffff:ffff')
        assert str(addr + 1) == '2001:db8:0:1::'
        assert (addr + 1) - 1 == addr

    def test_wraps(self):
        top = IPv6Address(MAX_IPV6)
        assert top + 1 == IPv6Address('::')
        assert IPv6Address('::') - 1 == top
        assert top + 2**127 + 1 == IPv6Address(2**127)

    def test_big_delta(self):
        addr = IPv6Address('::1')
        assert int(addr + 2**100) == 2**100 + 1
        assert int((addr + 2**100) - 2**100) == 1

    def test_offset(self):
        addr = IPv6Address('2001:db8::1')
        assert addr.offset(5) == addr.add(5)
        assert addr.offset(MAX_U64) == addr.add(MAX_U64)
        with pytest.raises(ValueError):
            addr.offset(-1)
        with pytest.raises(ValueError):
            addr.offset(2**64)

    def test_add_type(self):
        with pytest.raises(TypeError):
            IPv6Address('::1').add('1')
        with pytest.raises(TypeError):
            IPv6Address('::1') + 1.0

    @pytest.mark.parametrize('ip, delta', [
        (0, 0),
        (0, MAX_U64),
        (MAX_U64, 1),
        (MAX_U64, MAX_U64),
        (MAX_IPV6, 1),
        (MAX_IPV6, MAX_U64),
        (2**64, 1),
        (2**64 + 5, 6),
    ])
    def test_fast_path_boundaries(self, ip, delta):
        assert _add_fast(ip, delta) == _add_big(ip, delta)
        assert _sub_fast(ip, delta) == _sub_big(ip, delta)

    def test_fast_path_matches_big_path(self):
        rng = random.Random(3)
        for _ in range(2000):
            ip = rng.getrandbits(128)
            delta = rng.getrandbits(rng.randint(1, 64))
            assert _add_fast(ip, delta) == _add_big(ip, delta)
            assert _sub_fast(ip, delta) == _sub_big(ip, delta)
            assert _add(ip, delta) == (ip + delta) % 2**128
            assert _add(ip, -delta) == (ip - delta) % 2**128

    def test_arithmetic_may_reach_mapped_block(self):
        addr = IPv6Address('::fffe:ffff:ffff') + 1
        assert str(addr) == '::ffff:0:0'


class TestMask:
    def test_mask(self):
        addr = IPv6Address('2001:db8::1')
        assert str(addr.mask(64)) == '2001:db8::'
        assert addr.mask(128) == addr
        assert str(addr.mask(0)) == '::'
        assert str(IPv6Address('2001:db8:ffff::').mask(36)) == '2001:db8:f000::'

    def test_mask_idempotent(self):
        rng = random.Random(4)
        for _ in range(200):
            addr = IPv6Address(rand_address_int(rng))
            p = rng.randint(0, 128)
            assert addr.mask(p).mask(p) == addr.mask(p)

    @pytest.mark.parametrize('preflen', [-1, 129])
    def test_mask_contract(self, preflen):
        with pytest.raises(ValueError) as info:
            IPv6Address('::1').mask(preflen)
        assert not isinstance(info.value, PrefixValueError)


class TestReverseDns:
    def test_reverse_dns(self):
        name = IPv6Address('2001:db8::1').reverse_dns
        assert name == '1.' + '0.' * 23 + '8.b.d.0.1.0.0.2.' + REVERSE_ZONE
        assert name.endswith('ip6.arpa.')
        assert name.startswith('1.0.0.0.')

    def test_reverse_dns_nibbles(self):
        name = IPv6Address('::').reverse_dns
        assert len(name[:-len(REVERSE_ZONE)].split('.')) == 33


class TestDistance:
    def test_distance(self):
        a = IPv6Address('2001:db8::1')
        b = IPv6Address('2001:db8::5')
        assert distance(a, b) == 4
        assert distance(b, a) == 4
        assert distance(a, a) == 0

    def test_borrow(self):
        a = IPv6Address(2**64)
        b = IPv6Address(1)
        assert distance(a, b) == 2**64 - 1
        assert distance(IPv6Address(0), IPv6Address(MAX_IPV6)) == MAX_IPV6

    def test_distance_properties(self):
        rng = random.Random(5)
        for _ in range(500):
            a = IPv6Address(rand_address_int(rng))
            b = IPv6Address(rand_address_int(rng))
            assert distance(a, b) == distance(b, a) == abs(int(a) - int(b))
            k = rng.randint(0, MAX_IPV6 - int(a))
            assert distance(a, a.add(k)) == k

    def test_distance_type(self):
        with pytest.raises(TypeError):
            distance(IPv6Address('::1'), 1)
