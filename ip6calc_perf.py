#!/usr/bin/env python
"""Performance tests for the ip6calc module.

Each test times the standard library ipaddress module against ip6calc
and reports the ratio.  Pass words on the command line to run only the
tests whose names contain them, e.g.

    python ip6calc_perf.py summarize split
"""

import ipaddress as ip
import sys
import time

import ip6calc

# =============================================================================

class TextFx:
    '''Terminal strings for text effects.'''

    RESET               = '\033[0m'
    YELLOW              = '\033[33m'
    BOLD_RED            = '\033[91m'
    BOLD_MAGENTA        = '\033[95m'

# =============================================================================

def fn_name(depth = 0):
    """Get the function name from the call stack.

    Args:
        depth: call stack depth to return, 0=parent, 1=grandparent, etc.
    """
    return sys._getframe(depth + 1).f_code.co_name  # pylint: disable=W0212

def has_colours(stream):
    """True if stream is a terminal with more than 2 colours."""
    if hasattr(stream, 'isatty') and stream.isatty():
        try:
            import curses
            curses.setupterm()
            return curses.tigetnum('colors') > 2
        except Exception:
            pass
    return False

def time_multi(n, fns, *args, **kwargs):
    """Time the execution of multiple functions.

    Args:
        n: number of times to call each function
        fns: a list of functions to time
        args: positional arguments to pass to each function
        kwargs: keyword arguments to pass to each function

    Returns:
        A list of tuples: (time, result)
            with the elapsed time and last return value from each function
    """
    results = []
    for fn in fns:
        start = time.perf_counter_ns()
        for i in range(n):
            result = fn(*args, **kwargs)
        elapsed = time.perf_counter_ns() - start
        results.append((elapsed, result))
    return results

def generic_test(reporter, test_id, n, fns, *args, **kwargs):
    """Run a timed test for each function in fns and report the results."""
    results = time_multi(n, fns, *args, **kwargs)
    reporter.report(test_id, n, results, str(args))

# =============================================================================

class Reporter(object):
    """Reporter for performance test results."""

    def __init__(self, gt_txt='SLOWER', lt_txt='faster'):
        """Initialise the report.

        Args:
            gt_txt: the reported message if time1 > time2
            lt_txt: the reported message if time1 < time2
        """
        self.gt_txt = gt_txt
        self.lt_txt = lt_txt
        self.time1 = 0
        self.time2 = 0

    @staticmethod
    def _summary(time1, time2, gt_txt, lt_txt):
        """The ratio text and colour for a pair of times."""
        fx = ''
        if time1 == 0 or time2 == 0:
            ratio, summary = 0.0, 'NO DATA'
        elif time1 == time2:
            ratio, summary = 1.0, 'EQUAL'
        elif time2 < time1:
            ratio = time1 / time2
            summary = f'{ratio:.2f} times {lt_txt}'
        else:
            ratio = time2 / time1
            summary = f'{ratio:.2f} times {gt_txt} >>>'
            fx = TextFx.BOLD_RED
        if ratio < 1.02:
            fx = TextFx.YELLOW
        return fx, summary

    def report(self, test_id, n, results, msg):
        """Report the results.

        Args:
            n: the number of iterations
            results: a tuple ((time1, result1), (time2, result2)) where
                    time1: the reference elapsed time
                    result1: the reference result
                    time2: the ip6calc elapsed time
                    result2: the ip6calc result
                A result of None is not compared.
            msg: test information
        """
        (time1, result1), (time2, result2) = results
        self.time1 += time1
        self.time2 += time2
        fx1, summary = self._summary(time1, time2, self.gt_txt, self.lt_txt)
        fx0, fx2, suffix = TextFx.RESET, '', ''
        if (result1 is not None and result2 is not None and
                str(result1) != str(result2)):
            suffix = f'\n    {result1}\n    {result2}'
            fx2 = TextFx.BOLD_MAGENTA
        if not has_colours(sys.stdout):
            fx0 = fx1 = fx2 = ''
        print(f'{fx1}{test_id}: {msg}')
        pc = (time2 * 100) / time1 if time1 else 0.0
        print(f'({n:7d}) {time1:>11,.0f} -> {time2:>11,.0f} {pc:6.1f}%  '
              f'{summary}{fx2}{suffix}{fx0}')

    @classmethod
    def group_report(cls, name, group, gt_txt='SLOWER', lt_txt='faster'):
        """Report a summary of a group of results."""
        time1 = sum(x.time1 for x in group)
        time2 = sum(x.time2 for x in group)
        if time1 == 0 and time2 == 0:
            return
        fx1, summary = cls._summary(time1, time2, gt_txt, lt_txt)
        fx0 = TextFx.RESET
        if not has_colours(sys.stdout):
            fx0 = fx1 = ''
        pc = (time2 * 100) / time1 if time1 else 0.0
        print(f'{fx1}{name:14} {time1:>14,.0f} -> {time2:>14,.0f} {pc:6.1f}%  '
              f'{summary}{fx0}')

# =============================================================================

class PerfTest(object):
    """Performance tests for the ip6calc module."""

    def __init__(self):
        """Instantiate: build a list of test methods."""
        self._tests = [(name, fn)
                       for name, fn in sorted(self.__class__.__dict__.items())
                       if name.startswith('test_')]
        self.report_a = Reporter()      # for IPv6Address
        self.report_n = Reporter()      # for IPv6Network
        self.report_c = Reporter()      # for network collections
        self.report_x = Reporter()      # bignum -> fast arithmetic

    def run(self, matches=None):
        """Run the tests.

        Args:
            matches: sequence of strings to match test names to be run
        """
        for name, fn in self._tests:
            if not matches or any(match in name for match in matches):
                fn(self)
        Reporter.group_report('IPv6Address', [self.report_a])
        Reporter.group_report('IPv6Network', [self.report_n])
        Reporter.group_report('Collections', [self.report_c])
        Reporter.group_report('Arithmetic', [self.report_x])
        Reporter.group_report('TOTAL', [self.report_a, self.report_n,
                                         self.report_c])

    # =========================================================================
    # IPv6Address
    # =========================================================================

    def test_address_init(self):
        """Test parsing addresses."""
        n = 10**5
        data = [
            '::',
            '::1',
            '2001:db8::1',
            '1:2:3:4:5:6:7:8',
            '2001:0db8:0000:0000:0000:ff00:0042:8329',
            2**100 + 7,
        ]
        fns = ip.IPv6Address, ip6calc.IPv6Address
        for args in data:
            generic_test(self.report_a, fn_name(), n, fns, args)

    def test_address_str(self):
        """Test formatting compressed addresses."""
        n = 10**5
        for txt in ['::', '2001:db8::1', '1:0:0:2:0:0:0:3', '1:2:3:4:5:6:7:8']:
            fns = (ip.IPv6Address(txt).__str__,
                   ip6calc.IPv6Address(txt).__str__)
            generic_test(self.report_a, fn_name(), n, fns)

    def test_address_exploded(self):
        """Test formatting exploded addresses."""
        n = 10**5
        for txt in ['::', '2001:db8::1']:
            fns = (lambda a=ip.IPv6Address(txt): a.exploded,
                   lambda a=ip6calc.IPv6Address(txt): a.exploded)
            generic_test(self.report_a, fn_name(), n, fns)

    def test_address_add(self):
        """Test adding to addresses."""
        n = 10**5
        for delta in [1, 2**32, 2**63]:
            fns = (ip.IPv6Address('2001:db8::1').__add__,
                   ip6calc.IPv6Address('2001:db8::1').__add__)
            generic_test(self.report_a, fn_name(), n, fns, delta)

    def test_address_reverse(self):
        """Test reverse DNS names."""
        n = 10**4
        a1 = ip.IPv6Address('2001:db8::1')
        a2 = ip6calc.IPv6Address('2001:db8::1')
        # the names differ by the trailing dot, so don't compare them
        results = time_multi(n, [lambda: a1.reverse_pointer,
                                 lambda: a2.reverse_dns])
        results = [(t, None) for t, _ in results]
        self.report_a.report(fn_name(), n, results, str(a2))

    # =========================================================================
    # Arithmetic paths
    # =========================================================================

    def test_arith_add(self):
        """Test the 64-bit fast path against arbitrary precision."""
        n = 10**5
        ip6 = int(ip6calc.IPv6Address('2001:db8::ffff:ffff:ffff:fff0'))
        for delta in [1, 0x20, 2**64 - 1]:
            fns = ip6calc._add_big, ip6calc._add_fast
            generic_test(self.report_x, fn_name(), n, fns, ip6, delta)
            fns = ip6calc._sub_big, ip6calc._sub_fast
            generic_test(self.report_x, fn_name(), n, fns, ip6, delta)

    # =========================================================================
    # IPv6Network
    # =========================================================================

    def test_network_init(self):
        """Test parsing networks."""
        n = 10**5
        for txt in ['::/0', '2001:db8::/32', '2001:db8::1/128']:
            fns = ip.IPv6Network, ip6calc.IPv6Network
            generic_test(self.report_n, fn_name(), n, fns, txt)

    def test_network_contains(self):
        """Test address containment."""
        n = 10**5
        n1, a1 = ip.IPv6Network('2001:db8::/32'), ip.IPv6Address('2001:db8::1')
        n2 = ip6calc.IPv6Network('2001:db8::/32')
        a2 = ip6calc.IPv6Address('2001:db8::1')
        fns = lambda: a1 in n1, lambda: a2 in n2
        generic_test(self.report_n, fn_name(), n, fns)

    def test_network_overlaps(self):
        """Test network overlap."""
        n = 10**5
        n1 = ip.IPv6Network('2001:db8::/32')
        n2 = ip6calc.IPv6Network('2001:db8::/32')
        fns = (lambda o=ip.IPv6Network('2001:db8:1::/48'): n1.overlaps(o),
               lambda o=ip6calc.IPv6Network('2001:db8:1::/48'): n2.overlaps(o))
        generic_test(self.report_n, fn_name(), n, fns)

    def test_network_split(self):
        """Test splitting networks."""
        n = 10**2
        for txt, preflen in [('2001:db8::/48', 56), ('2001:db8::/48', 60),
                             ('2001:db8::/120', 128)]:
            net1, net2 = ip.IPv6Network(txt), ip6calc.IPv6Network(txt)
            fns = (lambda: list(net1.subnets(new_prefix=preflen)),
                   lambda: net2.split(preflen))
            generic_test(self.report_n, fn_name(), n, fns)

    # =========================================================================
    # Network collections
    # =========================================================================

    def test_summarize(self):
        """Test summarize against collapse_addresses."""
        n = 10**3
        data = [
            ('2001:db8::/65', '2001:db8:0:0:8000::/65'),
            ('2::/16', '3::/16', '::2/127', '::1/128', '::/128'),
            tuple('2001:db8::%x/128' % i for i in range(256)),
        ]
        for addrs in data:
            nets1 = [ip.IPv6Network(a) for a in addrs]
            nets2 = [ip6calc.IPv6Network(a) for a in addrs]
            results = (
                time_multi(n, [lambda: list(ip.collapse_addresses(nets1))])[0],
                time_multi(n, [lambda: ip6calc.summarize(nets2)])[0])
            self.report_c.report(fn_name(), n, results, addrs[:4])

    def test_cover_range(self):
        """Test cover_range against summarize_address_range."""
        n = 10**3
        ranges = [
            ('::1', '::ff'),
            ('1:2:3:4::', '5:6:7:8::'),
            ('1:2:3:4::', 'fff9:e789:5678:1234::'),
            ('::1', 'ffff:ffff:ffff:ffff:ffff:ffff:ffff:ffff'),
        ]
        for first, last in ranges:
            a1, b1 = ip.IPv6Address(first), ip.IPv6Address(last)
            a2, b2 = ip6calc.IPv6Address(first), ip6calc.IPv6Address(last)
            results = (
                time_multi(n, [lambda: list(ip.summarize_address_range(a1, b1))])[0],
                time_multi(n, [lambda: ip6calc.cover_range(a2, b2)])[0])
            self.report_c.report(fn_name(), n, results, f'{first} - {last}')

# =============================================================================

if __name__ == '__main__':
    matches = sys.argv[1:]
    PerfTest().run(matches)
