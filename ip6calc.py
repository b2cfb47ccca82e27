"""IPv6 address and network algebra.

This module is used to parse, format and do arithmetic on IPv6 addresses,
and to split, summarize, cover and compare IPv6 networks.

Only genuine 128-bit addresses are supported: IPv4 addresses, dotted-quad
IPv6 forms and IPv4-mapped addresses are rejected.
"""

import logging
import random

# =============================================================================
# Module specific constants
# =============================================================================

__version__ = '0.1.0'

# IP address length, in bits and bytes
IPV6LENGTH = 128
IPV6BYTES = 16

# Max IP address integer
MAX_IPV6 = 2**IPV6LENGTH - 1

# the two 64-bit halves used by the fast arithmetic path
_HALF_BITS = 64
_MAX_HALF = 2**_HALF_BITS - 1

# ::ffff:0:0/96, addresses carrying an embedded IPv4 address
_IPV4_MAPPED_PREFIX = 0xffff
_IPV4_MAPPED_SHIFT = 32

# upper limit on the number of subnets generated by a split
MAX_SPLIT_PARTS = 1 << 20

# the zone for reverse DNS names
REVERSE_ZONE = 'ip6.arpa.'

LOGGER = logging.getLogger(__name__)

# =============================================================================
# Module specific exceptions
# =============================================================================

class AddressValueError(ValueError):
    """A Value Error related to the address."""

class CIDRValueError(ValueError):
    """A Value Error related to the 'address/prefix' network syntax."""

class PrefixValueError(ValueError):
    """A Value Error related to the prefix length."""

class SplitPrefixValueError(ValueError):
    """The new prefix length for a split is not valid for the network."""

class SplitSizeError(ValueError):
    """A split would produce too many subnets."""

class RangeValueError(ValueError):
    """The first address of a range is after the last."""

class EmptyInputError(ValueError):
    """An operation needing at least one network was given none."""

# =============================================================================
# Utility functions
# =============================================================================

_HEX_DIGITS = frozenset('0123456789ABCDEFabcdef')
_DECIMAL_DIGITS = frozenset('0123456789')

def ishexdigit(txt):
    """Returns True if all characters are hex digits"""
    for digit in txt:
        if digit not in _HEX_DIGITS:
            return False
    # an empty string is not hex
    return txt != ''

def isdecimal(txt):
    """Returns True if all characters are ASCII decimal digits"""
    for digit in txt:
        if digit not in _DECIMAL_DIGITS:
            return False
    return txt != ''

def _netmask(preflen):
    """The network mask for a prefix length, as an integer."""
    return MAX_IPV6 ^ (MAX_IPV6 >> preflen)

def _is_ipv4_mapped(ip):
    """True if the integer address is in ::ffff:0:0/96."""
    return ip >> _IPV4_MAPPED_SHIFT == _IPV4_MAPPED_PREFIX

def _count_righthand_zero_bits(number, bits):
    """Count the number of zero bits on the right hand side.

    Args:
        number: An integer.
        bits: Maximum number of bits to count.

    Returns:
        The number of zero bits on the right hand side of the number.
    """
    if number == 0:
        return bits
    return min(bits, (~number & (number - 1)).bit_length())

def _split_halves(ip):
    """Split an address integer into (high, low) 64-bit halves."""
    return ip >> _HALF_BITS, ip & _MAX_HALF

def _join_halves(hi, lo):
    """Join (high, low) 64-bit halves into an address integer."""
    return (hi & _MAX_HALF) << _HALF_BITS | lo & _MAX_HALF

def _add_fast(ip, delta):
    """Add a 64-bit delta, carrying into the high half only.

    Args:
        ip: The address integer.
        delta: An integer, 0 <= delta < 2**64.

    Returns:
        (ip + delta) modulo 2**128.
    """
    hi, lo = _split_halves(ip)
    lo += delta
    if lo > _MAX_HALF:
        hi += 1
    return _join_halves(hi, lo)

def _sub_fast(ip, delta):
    """Subtract a 64-bit delta, borrowing from the high half only.

    Args:
        ip: The address integer.
        delta: An integer, 0 <= delta < 2**64.

    Returns:
        (ip - delta) modulo 2**128.
    """
    hi, lo = _split_halves(ip)
    if lo >= delta:
        lo -= delta
    else:
        lo = lo - delta + _MAX_HALF + 1
        hi -= 1
    return _join_halves(hi, lo)

def _add_big(ip, delta):
    """Add a non-negative delta of any size, modulo 2**128."""
    return (ip + delta) % (MAX_IPV6 + 1)

def _sub_big(ip, delta):
    """Subtract a non-negative delta of any size, modulo 2**128."""
    return (ip - delta) % (MAX_IPV6 + 1)

def _add(ip, delta):
    """Add a signed delta to an address integer, modulo 2**128.

    Deltas that fit in 64 bits take the fast path; larger ones use
    arbitrary precision arithmetic.  Both give the same result.
    """
    if delta < 0:
        delta = -delta
        if delta <= _MAX_HALF:
            return _sub_fast(ip, delta)
        return _sub_big(ip, delta)
    if delta <= _MAX_HALF:
        return _add_fast(ip, delta)
    return _add_big(ip, delta)

def v6_int_to_packed(address):
    """Represent an address as 16 packed bytes in network (big-endian) order.

    Args:
        address: An integer representation of an IPv6 IP address.

    Returns:
        The 16-byte packed integer address in network (big-endian) order.

    Raises:
        ValueError: If address is negative or too large for an IPv6 address.
    """
    try:
        return address.to_bytes(IPV6BYTES, 'big')
    except OverflowError:
        raise ValueError('Address negative or too large for IPv6')

def distance(a, b):
    """The number of addresses between two addresses.

    The result is the same whichever way round the addresses are given.

    Example:
        >>> distance(IPv6Address('2001:db8::5'), IPv6Address('2001:db8::1'))
        4

    Args:
        a: An IPv6Address.
        b: An IPv6Address.

    Returns:
        |a - b| as a non-negative integer.

    Raises:
        TypeError: If a or b is not an IPv6Address.
    """
    if not isinstance(a, IPv6Address) or not isinstance(b, IPv6Address):
        raise TypeError('a (%r) and b (%r) must be IPv6 addresses' % (a, b))
    low, high = (a._ip, b._ip) if a._ip <= b._ip else (b._ip, a._ip)
    low_hi, low_lo = _split_halves(low)
    high_hi, high_lo = _split_halves(high)
    if high_lo >= low_lo:
        dlo = high_lo - low_lo
        dhi = high_hi - low_hi
    else:
        # borrow from the high half
        dlo = high_lo - low_lo + _MAX_HALF + 1
        dhi = high_hi - 1 - low_hi
    return dhi << _HALF_BITS | dlo

# =============================================================================
# IPv6 Address class
# =============================================================================

class IPv6Address:
    """An IPv6 Address."""

    __slots__ = ('_ip',)

    @staticmethod
    def from_string(txt):
        """Convert an IPv6 address string to an integer.

        The string format is "n1:n2:n3:n4:n5:n6:n7:n8", where n1 to n8
        are hexadecimal integers in the range 0 to FFFF, inclusive.  A
        single sequence of consecutive words with a value of 0 may be
        represented as '::'.  Leading zeros are permitted in n1 to n8,
        up to a maximum of 4 hex digits.

        Surrounding whitespace is ignored.  Dotted-quad IPv4 suffixes
        and scope ids are not permitted.

        Args:
            txt: An IPv6 address string

        Returns:
            The IPv6 address as an integer

        Raises:
            AddressValueError if the string is not a valid IPv6 address.
        """
        txt = txt.strip()
        parts = txt.split('::')
        numparts = len(parts)
        if numparts > 2:
            raise AddressValueError('multiple "::" ranges: %r' % (txt,))
        # store lists of values before (head) and after (tail) the '::'
        head, tail = [], []
        values = head
        for part in parts:
            if part:
                for word in part.split(':'):
                    if not ishexdigit(word) or len(word) > 4:
                        raise AddressValueError('invalid address: %r' % (txt,))
                    values.append(int(word, 16))
            values = tail
        # build a single list of values, filling the gap with 0's
        if numparts == 2:
            numwords = len(head) + len(tail)
            if numwords >= 8:
                raise AddressValueError('too many words: %r' % (txt,))
            head.extend([0] * (8 - numwords))
            head.extend(tail)
        elif len(head) != 8:
            raise AddressValueError('too many/few words: %r' % (txt,))
        ip = 0
        for val in head:
            ip = (ip << 16) + val
        return ip

    @staticmethod
    def _to_string(ip):
        """Convert an integer to a compressed IPv6 address string.

        The first of the longest runs of two or more zero words is
        replaced by '::'.

        Args:
            ip: The address integer

        Returns:
            The address string
        """
        words = (ip >> 112 & 0xffff,
                 ip >>  96 & 0xffff,
                 ip >>  80 & 0xffff,
                 ip >>  64 & 0xffff,
                 ip >>  48 & 0xffff,
                 ip >>  32 & 0xffff,
                 ip >>  16 & 0xffff,
                 ip >>   0 & 0xffff)
        # find the longest sequence of zeros (start, length)
        zeros = 0, 0
        start, length, index = 0, 0, 0
        for word in words:
            if word == 0:
                if length == 0:
                    start = index
                length += 1
            elif length > 0:
                if length > zeros[1]:
                    zeros = start, length
                length = 0
            index += 1
        # a trailing run only wins if it is strictly longer
        if length <= zeros[1]:
            start, length = zeros
        if length > 1:
            head = ':'.join(('%x' % x for x in words[:start]))
            tail = ':'.join(('%x' % x for x in words[start + length:]))
            return '::'.join([head, tail])
        return ':'.join(('%x' % x for x in words))

    @staticmethod
    def _to_string_exploded(ip, upper=False):
        """Convert an integer to an exploded IPv6 address string.

        Args:
            ip: The address integer
            upper: If True, use upper case hex digits

        Returns:
            The address string, eight zero-padded 4 digit words
        """
        fmt = '%04X' if upper else '%04x'
        return ':'.join(fmt % (ip >> shift & 0xffff)
                        for shift in range(112, -1, -16))

    @classmethod
    def to_string(cls, ip):
        """Convert an integer to a compressed IPv6 address string.

        Raises:
            AddressValueError if the ip address is not valid
        """
        if not 0 <= ip <= MAX_IPV6:
            raise AddressValueError('IPv6 integer out of range: %r' % (ip,))
        return cls._to_string(ip)

    def __init__(self, address):
        """Instantiate a new IPv6 address.

        Args:
            address: The address value as a string, an integer in the
                range 0 to 2**128 - 1, 16 bytes in network order, or
                another IPv6Address.

        Raises:
            AddressValueError: If the address is not a valid IPv6
                address, or embeds an IPv4 address.
        """
        if isinstance(address, IPv6Address):
            self._ip = address._ip
            return
        if isinstance(address, bool):
            raise AddressValueError('invalid address: %r' % (address,))
        if isinstance(address, int):
            self._ip = address
        elif isinstance(address, bytes):
            if len(address) != IPV6BYTES:
                raise AddressValueError('expected %d bytes, got %d: %r' %
                                        (IPV6BYTES, len(address), address))
            self._ip = int.from_bytes(address, 'big')
        elif isinstance(address, str):
            self._ip = self.from_string(address)
        else:
            raise AddressValueError('invalid address: %r' % (address,))
        if not 0 <= self._ip <= MAX_IPV6:
            raise AddressValueError('invalid address: %r' % (address,))
        if _is_ipv4_mapped(self._ip):
            raise AddressValueError('IPv4-mapped address: %r' % (address,))

    @classmethod
    def _from_int(cls, ip):
        """Build an address from an integer produced by arithmetic."""
        addr = cls.__new__(cls)
        addr._ip = ip
        return addr

    def __str__(self):
        return self._to_string(self._ip)

    def __repr__(self):
        return "%s('%s')" % (self.__class__.__name__, self.__str__())

    def __reduce__(self):
        return self.__class__._from_int, (self._ip,)

    def __int__(self):
        """The IP address as an integer."""
        return self._ip

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self._ip == other._ip

    def __ne__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self._ip != other._ip

    def __lt__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self._ip < other._ip

    def __le__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self._ip <= other._ip

    def __gt__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self._ip > other._ip

    def __ge__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self._ip >= other._ip

    def __hash__(self):
        return hash(self._ip)

    def __add__(self, delta):
        """Get a new IP address whose integer value is self+delta.

        The result wraps around modulo 2**128.

        Args:
            delta: The integer to add to this IP address.

        Returns:
            A new IPv6Address.
        """
        if not isinstance(delta, int):
            return NotImplemented
        return self._from_int(_add(self._ip, delta))

    def __sub__(self, delta):
        """Get a new IP address whose integer value is self-delta.

        The result wraps around modulo 2**128.

        Args:
            delta: The integer to subtract from this IP address.

        Returns:
            A new IPv6Address.
        """
        if not isinstance(delta, int):
            return NotImplemented
        return self._from_int(_add(self._ip, -delta))

    def add(self, delta):
        """Add a signed integer, modulo 2**128."""
        if not isinstance(delta, int):
            raise TypeError('delta must be an integer: %r' % (delta,))
        return self + delta

    def subtract(self, delta):
        """Subtract a signed integer, modulo 2**128."""
        if not isinstance(delta, int):
            raise TypeError('delta must be an integer: %r' % (delta,))
        return self - delta

    def offset(self, value):
        """Add an unsigned 64-bit offset, modulo 2**128.

        Raises:
            ValueError: If value is negative or does not fit in 64 bits.
        """
        if not 0 <= value <= _MAX_HALF:
            raise ValueError('offset out of 64-bit range: %r' % (value,))
        return self._from_int(_add_fast(self._ip, value))

    def mask(self, preflen):
        """Zero all the bits after the first preflen bits.

        Callers are expected to pass a valid prefix length.

        Args:
            preflen: The prefix length, 0 to 128.

        Returns:
            A new IPv6Address.

        Raises:
            ValueError: If preflen is not in the range 0 to 128.
        """
        if not 0 <= preflen <= IPV6LENGTH:
            raise ValueError('invalid prefix length in mask: %r' % (preflen,))
        return self._from_int(self._ip & _netmask(preflen))

    def compare(self, other):
        """Compare with another IPv6 address.

        Returns:
            -1 if self < other; 0 if self == other; 1 if self > other

        Raises:
            TypeError if other is not an IPv6Address.
        """
        if not isinstance(other, self.__class__):
            raise TypeError('comparing %r to %r' % (self, other))
        if self._ip < other._ip:
            return -1
        if self._ip > other._ip:
            return 1
        return 0

    @property
    def compressed(self):
        """The short string representation of the IP address."""
        return self.__str__()

    @property
    def exploded(self):
        """The fully expanded string representation of the IP address."""
        return self._to_string_exploded(self._ip)

    @property
    def exploded_upper(self):
        """The fully expanded representation, in upper case."""
        return self._to_string_exploded(self._ip, upper=True)

    @property
    def packed(self):
        """The binary representation of this address."""
        return self._ip.to_bytes(IPV6BYTES, 'big')

    @property
    def reverse_dns(self):
        """The name of the reverse DNS pointer for the IP address.

        As described in RFC3596 2.5, with a trailing dot.  e.g:
            >>> IPv6Address("2001:db8::1").reverse_dns
            '1.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.8.b.d.0.1.0.0.2.ip6.arpa.'
        """
        reverse_chars = ('%032x' % self._ip)[::-1]
        return '.'.join(reverse_chars) + '.' + REVERSE_ZONE

# =============================================================================
# IPv6 Network class
# =============================================================================

class IPv6Network:
    """An IPv6 Network: a base address and a prefix length.

    The base address always has its host bits cleared.
    """

    __slots__ = ('_ip', '_prefixlen', '_size',
                 '_networkaddress', '_lastaddress')

    @staticmethod
    def _prefix_from_string(txt):
        """Convert a prefix string to a prefix length.

        Args:
            txt: A decimal integer string, in the range 0 to 128.

        Returns:
            the prefix length as an integer

        Raises:
            PrefixValueError if the string is not a valid prefix.
        """
        if not isdecimal(txt):
            raise PrefixValueError('invalid prefix: %r' % (txt,))
        preflen = int(txt, 10)
        if preflen > IPV6LENGTH:
            raise PrefixValueError('prefix length too big: %r' % (txt,))
        return preflen

    @classmethod
    def from_string(cls, txt):
        """Convert an 'address/prefix' string to an integer and prefix length.

        Args:
            txt: An IPv6 network string, e.g. '2001:db8::/32'

        Returns:
            The network address and prefix length, as integers

        Raises:
            CIDRValueError if the string is not address/prefix.
            AddressValueError if the address is not valid.
            PrefixValueError if the prefix is not valid.
        """
        words = txt.strip().split('/')
        if len(words) != 2:
            raise CIDRValueError('invalid network: %r' % (txt,))
        ip = IPv6Address(words[0])._ip
        return ip, cls._prefix_from_string(words[1])

    def __init__(self, address):
        """Instantiate a new IPv6Network object.

        Host bits in the address are cleared, so the network address is
        always the first address in the network.

        Args:
            address: The network, as one of:
                - an 'address/prefix' string
                - an (address, prefix) tuple, where address is anything
                  accepted by IPv6Address and prefix is an integer, or a
                  decimal string, in the range 0 to 128
                - an IPv6Address or integer, giving a /128 network

        Raises:
            CIDRValueError: If a string is not in address/prefix form.
            AddressValueError: If the address is not valid.
            PrefixValueError: If the prefix is not valid.
        """
        if isinstance(address, tuple):
            if len(address) != 2:
                raise CIDRValueError('expected (address, prefix): %r' %
                                     (address,))
            address, prefix = address
            ip = IPv6Address(address)._ip
            if isinstance(prefix, str):
                prefix = self._prefix_from_string(prefix)
            elif isinstance(prefix, bool) or not isinstance(prefix, int):
                raise PrefixValueError('invalid prefix: %r' % (prefix,))
        elif isinstance(address, str):
            ip, prefix = self.from_string(address)
        else:
            ip = IPv6Address(address)._ip
            prefix = IPV6LENGTH
        if not 0 <= prefix <= IPV6LENGTH:
            raise PrefixValueError('invalid prefix length: %r' % (prefix,))
        self._init(ip, prefix)

    def _init(self, ip, preflen):
        self._prefixlen = preflen
        self._size = 2**(IPV6LENGTH - preflen)
        self._ip = ip & _netmask(preflen)
        # The following values are assigned on first use
        self._networkaddress = None
        self._lastaddress = None

    @classmethod
    def _from_int(cls, ip, preflen):
        """Build a network from a validated integer and prefix length."""
        net = cls.__new__(cls)
        net._init(ip, preflen)
        return net

    def __str__(self):
        return f'{IPv6Address._to_string(self._ip)}/{self._prefixlen}'

    def __repr__(self):
        return "%s('%s')" % (self.__class__.__name__, self.__str__())

    def __hash__(self):
        return hash((self._ip, self._prefixlen))

    def __reduce__(self):
        return self.__class__._from_int, (self._ip, self._prefixlen)

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self._ip == other._ip and self._prefixlen == other._prefixlen

    def __ne__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self._ip != other._ip or self._prefixlen != other._prefixlen

    def __lt__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return ((self._ip, self._prefixlen) <
                (other._ip, other._prefixlen))

    def __le__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return ((self._ip, self._prefixlen) <=
                (other._ip, other._prefixlen))

    def __gt__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return ((self._ip, self._prefixlen) >
                (other._ip, other._prefixlen))

    def __ge__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return ((self._ip, self._prefixlen) >=
                (other._ip, other._prefixlen))

    def _contains(self, ip_int):
        """Check if IP integer value is in this network."""
        return self._ip == ip_int & _netmask(self._prefixlen)

    def _contains_net(self, net):
        """Check if an IP network is contained in this network."""
        return (self._prefixlen <= net._prefixlen and
                self._contains(net._ip))

    def __contains__(self, other):
        """Check if an IP address, or another network, is in this network.

        Args:
            other: the IPv6Address or IPv6Network to check

        Returns:
            True if other is in this network; otherwise False
        """
        if isinstance(other, IPv6Address):
            return self._contains(other._ip)
        if isinstance(other, self.__class__):
            return self._contains_net(other)
        return False

    def contains_address(self, address):
        """True if the IPv6Address is in this network."""
        if not isinstance(address, IPv6Address):
            raise TypeError('expected an IPv6Address: %r' % (address,))
        return self._contains(address._ip)

    def contains_network(self, other):
        """True if the other IPv6Network is wholly inside this network."""
        if not isinstance(other, self.__class__):
            raise TypeError('expected an IPv6Network: %r' % (other,))
        return self._contains_net(other)

    def subnet_of(self, other):
        """Return True if this network is a subnet of other."""
        return other.contains_network(self)

    def supernet_of(self, other):
        """Return True if this network is a supernet of other."""
        return self.contains_network(other)

    def overlaps(self, other):
        """Check if another IP network overlaps this one.

        The address ranges [first, last] of the two networks are
        compared, so the prefix lengths may be given in either order.

        Args:
            other: The IPv6Network to check

        Returns:
            A boolean: True if the two networks share any address.

        Raises:
            TypeError: If other is not an IPv6Network.
        """
        if not isinstance(other, self.__class__):
            raise TypeError('self (%r) and other (%r) must be the same type' %
                            (self, other))
        return (self._ip <= other._last_int and
                other._ip <= self._last_int)

    @property
    def _last_int(self):
        """The last IP address in the network, as an integer."""
        return self._ip + self._size - 1

    @property
    def network_address(self):
        """The IP network base IP address."""
        if self._networkaddress is None:
            self._networkaddress = IPv6Address._from_int(self._ip)
        return self._networkaddress

    first_host = network_address

    @property
    def last_host(self):
        """The last IP address in the network."""
        if self._lastaddress is None:
            self._lastaddress = IPv6Address._from_int(self._last_int)
        return self._lastaddress

    @property
    def num_addresses(self):
        """The number of addresses in this network."""
        return self._size

    @property
    def prefixlen(self):
        """The network prefix length, in bits."""
        return self._prefixlen

    @property
    def compressed(self):
        return self.__str__()

    @property
    def exploded(self):
        """The full string representation of the IP network."""
        return f'{IPv6Address._to_string_exploded(self._ip)}/{self._prefixlen}'

    def next(self):
        """The adjacent network of the same size after this one.

        Wraps around to ::/prefixlen after the last network.
        """
        return self._from_int(_add(self._ip, self._size), self._prefixlen)

    def prev(self):
        """The adjacent network of the same size before this one.

        Wraps around to the last network before ::/prefixlen.
        """
        return self._from_int(_add(self._ip, -self._size), self._prefixlen)

    def addresses(self, stride=1):
        """Iterate over addresses in this network.

        Args:
            stride: the step between successive addresses, at least 1.

        Returns:
            A generator of IPv6Address, starting at the network address.

        Raises:
            ValueError: If stride is less than 1.
        """
        if stride < 1:
            raise ValueError('stride must be positive: %r' % (stride,))
        return (IPv6Address._from_int(ip)
                for ip in range(self._ip, self._ip + self._size, stride))

    def _parts(self, preflen, max_parts):
        """Validate a new prefix length and count the parts of a split.

        Returns:
            (parts, step): the number of subnets and the size of each.
        """
        if (isinstance(preflen, bool) or not isinstance(preflen, int) or
                not self._prefixlen <= preflen <= IPV6LENGTH):
            raise SplitPrefixValueError(
                    'new prefix length %r is invalid for network %s' %
                    (preflen, self))
        diff = preflen - self._prefixlen
        parts = 1 << diff
        if parts > max_parts:
            raise SplitSizeError(
                    'splitting %s into /%d gives %d subnets, limit is %d' %
                    (self, preflen, parts, max_parts))
        LOGGER.debug('splitting %s into %d /%d subnets', self, parts, preflen)
        return parts, self._size >> diff

    def split(self, preflen, max_parts=MAX_SPLIT_PARTS):
        """Split this network into equal sized subnets.

        Splitting to the network's own prefix length returns a list of
        just this network.

        Example:
            >>> IPv6Network('2001:db8::/126').split(127)
            [IPv6Network('2001:db8::/127'), IPv6Network('2001:db8::2/127')]

        Args:
            preflen: The prefix length of the subnets, from this
                network's prefix length to 128.
            max_parts: The largest number of subnets to allow.

        Returns:
            A list of IPv6Network objects, in address order.

        Raises:
            SplitPrefixValueError: If preflen is shorter than this
                network's prefix, or longer than 128.
            SplitSizeError: If there would be more than max_parts subnets.
        """
        parts, step = self._parts(preflen, max_parts)
        return [self._from_int(self._ip + i * step, preflen)
                for i in range(parts)]

    def subnet_iterator(self, preflen, max_parts=MAX_SPLIT_PARTS):
        """Iterate lazily over the subnets of this network.

        The arguments and errors are those of split(); errors are
        raised here, not on the first iteration.

        Returns:
            A SubnetIterator.
        """
        parts, step = self._parts(preflen, max_parts)
        return SubnetIterator(self._ip, preflen, parts, step)

# =============================================================================

class SubnetIterator:
    """A forward-only iterator over the subnets of a network.

    Each subnet is computed from the previous one when it is requested.
    The iterator cannot be rewound; ask the network for a new one.
    """

    __slots__ = ('_next_ip', '_prefixlen', '_remaining', '_step', '_parts')

    def __init__(self, first_ip, preflen, parts, step):
        self._next_ip = first_ip
        self._prefixlen = preflen
        self._remaining = parts
        self._parts = parts
        self._step = step

    def __iter__(self):
        return self

    def __next__(self):
        if self._remaining == 0:
            raise StopIteration
        net = IPv6Network._from_int(self._next_ip, self._prefixlen)
        self._next_ip = _add(self._next_ip, self._step)
        self._remaining -= 1
        return net

    def __length_hint__(self):
        return self._remaining

    @property
    def total(self):
        """The number of subnets produced over the whole iteration."""
        return self._parts

    @property
    def remaining(self):
        """The number of subnets not yet produced."""
        return self._remaining

# =============================================================================
# Network collection functions
# =============================================================================

def split(network, preflen, max_parts=MAX_SPLIT_PARTS):
    """Split a network into subnets of a new prefix length.

    See IPv6Network.split().
    """
    if not isinstance(network, IPv6Network):
        raise TypeError('expected an IPv6Network: %r' % (network,))
    return network.split(preflen, max_parts)

def _as_network(obj):
    """Convert an address to a /128 network; pass networks through."""
    if isinstance(obj, IPv6Network):
        return obj
    if isinstance(obj, IPv6Address):
        return IPv6Network._from_int(obj._ip, IPV6LENGTH)
    raise TypeError('%r is not an IPv6 network or address' % (obj,))

def summarize(networks):
    """Reduce networks to the smallest equivalent list of networks.

    Networks inside another network are dropped, and pairs of sibling
    networks (the two halves of the same parent) are merged into the
    parent, repeatedly.  Networks that are next to each other but are not
    halves of the same parent are kept apart.

    Example:
        summarize([IPv6Network('2001:db8::/65'),
                   IPv6Network('2001:db8:0:0:8000::/65')]) ->
                  [IPv6Network('2001:db8::/64')]

    Args:
        networks: An iterable of IPv6Network (or IPv6Address) objects.

    Returns:
        A list of IPv6Network objects, in address order.

    Raises:
        TypeError: If an item is not an IPv6 network or address.
    """
    nets = [_as_network(net) for net in networks]
    # re-mask each base to its own prefix; the constructors already do this
    # but the summary depends on it
    nets = [(net._ip & _netmask(net._prefixlen), net._prefixlen)
            for net in nets]
    # base first, so that networks sharing addresses sort together
    nets.sort()
    stack = []
    for ip, preflen in nets:
        if stack:
            top_ip, top_preflen = stack[-1]
            if (top_preflen <= preflen and
                    ip & _netmask(top_preflen) == top_ip):
                continue
        stack.append((ip, preflen))
        while len(stack) >= 2:
            last_ip, last_preflen = stack[-1]
            prev_ip, prev_preflen = stack[-2]
            if last_preflen != prev_preflen or last_preflen == 0:
                break
            # prev.next() must be last
            if _add(prev_ip, 2**(IPV6LENGTH - prev_preflen)) != last_ip:
                break
            parent_preflen = last_preflen - 1
            parent_mask = _netmask(parent_preflen)
            if prev_ip & parent_mask != last_ip & parent_mask:
                break
            del stack[-2:]
            stack.append((prev_ip & parent_mask, parent_preflen))
    LOGGER.debug('summarized %d networks to %d', len(nets), len(stack))
    return [IPv6Network._from_int(ip, preflen) for ip, preflen in stack]

def _cover_range(first, last):
    """Cover an integer address range with networks.

    This internal method assumes all validation has already been done.

    Args:
        first: The first integer address in the range.
        last: The last integer address in the range.

    Returns:
        An iterator of IPv6Network objects.
    """
    while first <= last:
        nbits = min(_count_righthand_zero_bits(first, IPV6LENGTH),
                    (last - first + 1).bit_length() - 1)
        net = IPv6Network._from_int(first, IPV6LENGTH - nbits)
        yield net
        first += 1 << nbits
        if first - 1 == MAX_IPV6:
            break

def cover_range(first, last):
    """Cover an address range with the fewest networks.

    Example:
        >>> cover_range(IPv6Address('2001:db8::'), IPv6Address('2001:db8::2'))
        [IPv6Network('2001:db8::/127'), IPv6Network('2001:db8::2/128')]

    Args:
        first: The first IPv6Address in the range.
        last: The last IPv6Address in the range, inclusive.

    Returns:
        A list of IPv6Network objects, in address order, whose addresses
        are exactly first to last.

    Raises:
        RangeValueError: If first is after last.
    """
    first = IPv6Address(first)
    last = IPv6Address(last)
    if first > last:
        raise RangeValueError('first address %s is after last %s' %
                              (first, last))
    nets = list(_cover_range(first._ip, last._ip))
    LOGGER.debug('covered %s-%s with %d networks', first, last, len(nets))
    return nets

def supernet(networks):
    """The smallest network containing all the given networks.

    Args:
        networks: An iterable of IPv6Network (or IPv6Address) objects.

    Returns:
        An IPv6Network.

    Raises:
        EmptyInputError: If there are no networks.
        TypeError: If an item is not an IPv6 network or address.
    """
    nets = [_as_network(net) for net in networks]
    if not nets:
        raise EmptyInputError('supernet of an empty list')
    low = min(net._ip for net in nets)
    high = max(net._last_int for net in nets)
    # the number of leading bits low and high have in common
    preflen = IPV6LENGTH - (low ^ high).bit_length()
    return IPv6Network._from_int(low, preflen)

def diff_networks(networks):
    """Find the overlaps and gaps between networks.

    The networks are sorted by address, then each is compared with the
    next one.

    Args:
        networks: An iterable of IPv6Network objects.

    Returns:
        A tuple (overlaps, gaps): overlaps is a list of overlapping
        (IPv6Network, IPv6Network) pairs; gaps is a list of
        (IPv6Address, IPv6Address) first and last addresses of the
        ranges between neighbouring networks.
    """
    nets = sorted(_as_network(net) for net in networks)
    overlaps, gaps = [], []
    for a, b in zip(nets, nets[1:]):
        if a.overlaps(b):
            overlaps.append((a, b))
        elif a._last_int + 1 < b._ip:
            gaps.append((IPv6Address._from_int(a._last_int + 1),
                         IPv6Address._from_int(b._ip - 1)))
    return overlaps, gaps

# =============================================================================
# Random sampling
# =============================================================================

def random_address(network, rng=None):
    """A random address inside a network.

    Args:
        network: An IPv6Network.
        rng: A random.Random instance, or None to use the random module.

    Returns:
        An IPv6Address, uniformly chosen from the network.
    """
    bits = IPV6LENGTH - network._prefixlen
    if bits == 0:
        return network.network_address
    offset = (rng or random).getrandbits(bits)
    return IPv6Address._from_int(network._ip + offset)

def random_subnet(network, preflen, rng=None):
    """A random subnet of a network.

    No subnet list is built, so there is no limit on the number of
    possible subnets.

    Args:
        network: An IPv6Network.
        preflen: The prefix length of the subnet.
        rng: A random.Random instance, or None to use the random module.

    Returns:
        An IPv6Network of the new prefix length, inside network.

    Raises:
        SplitPrefixValueError: If preflen is shorter than the network's
            prefix, or longer than 128.
    """
    if (isinstance(preflen, bool) or not isinstance(preflen, int) or
            not network._prefixlen <= preflen <= IPV6LENGTH):
        raise SplitPrefixValueError(
                'new prefix length %r is invalid for network %s' %
                (preflen, network))
    if preflen == network._prefixlen:
        return network
    diff = preflen - network._prefixlen
    index = (rng or random).randrange(1 << diff)
    step = network._size >> diff
    return IPv6Network._from_int(network._ip + index * step, preflen)
