"""Tests for summarize()."""

import random

import pytest

from ip6calc import IPv6Address, IPv6Network, summarize


def nets(*txts):
    return [IPv6Network(txt) for txt in txts]


def strs(networks):
    return [str(net) for net in networks]


def covered(networks):
    """The set of integer addresses in some small networks."""
    result = set()
    for net in networks:
        result.update(range(int(net.first_host), int(net.last_host) + 1))
    return result


class TestSummarize:
    def test_siblings(self):
        low = IPv6Network('2001:db8::/65')
        assert strs(summarize([low, low.next()])) == ['2001:db8::/64']

    def test_siblings_reversed(self):
        low = IPv6Network('2001:db8::/65')
        assert strs(summarize([low.next(), low])) == ['2001:db8::/64']

    def test_quarters(self):
        result = summarize(IPv6Network('2001:db8::/64').split(66))
        assert strs(result) == ['2001:db8::/64']

    def test_cascade(self):
        result = summarize(nets('::2/127', '::1/128', '::/128'))
        assert strs(result) == ['::/126']

    def test_whole_space(self):
        assert strs(summarize(nets('8000::/1', '::/1'))) == ['::/0']

    def test_contained(self):
        result = summarize(nets('2001:db8::/48', '2001:db8:0:1::/64',
                                '2001:db8::/48', '2001:db8::1/128'))
        assert strs(result) == ['2001:db8::/48']

    def test_duplicates(self):
        result = summarize(nets('2001:db8::/64', '2001:db8::/64'))
        assert strs(result) == ['2001:db8::/64']

    def test_misaligned_hosts(self):
        result = summarize(nets('2001:db8::1/128', '2001:db8::2/128'))
        assert strs(result) == ['2001:db8::1/128', '2001:db8::2/128']

    def test_misaligned_networks(self):
        result = summarize(nets('2001:db8:0:1::/64', '2001:db8:0:2::/64'))
        assert strs(result) == ['2001:db8:0:1::/64', '2001:db8:0:2::/64']

    def test_different_sizes(self):
        result = summarize(nets('2001:db8::/65', '2001:db8:0:0:8000::/66'))
        assert strs(result) == ['2001:db8::/65', '2001:db8:0:0:8000::/66']

    def test_disjoint_sorted(self):
        result = summarize(nets('2001:db8:2::/48', '2001:db8::/48'))
        assert strs(result) == ['2001:db8::/48', '2001:db8:2::/48']

    def test_addresses(self):
        result = summarize([IPv6Address('::1'), IPv6Address('::')])
        assert strs(result) == ['::/127']

    def test_empty(self):
        assert summarize([]) == []
        assert summarize(iter(())) == []

    def test_type(self):
        with pytest.raises(TypeError):
            summarize(['2001:db8::/64'])

    def test_random_networks(self):
        rng = random.Random(30)
        base = int(IPv6Address('2001:db8::'))
        for _ in range(200):
            inputs = []
            for _ in range(rng.randint(1, 12)):
                preflen = rng.randint(120, 128)
                inputs.append(IPv6Network((base + rng.randrange(256),
                                           preflen)))
            result = summarize(inputs)
            # same addresses
            assert covered(result) == covered(inputs)
            # sorted and disjoint
            for a, b in zip(result, result[1:]):
                assert int(a.last_host) < int(b.first_host)
            # every input is inside one output
            for net in inputs:
                assert any(net in out for out in result)
            # nothing left to merge
            assert summarize(result) == result
