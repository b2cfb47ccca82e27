#!/usr/bin/env python
"""Command line IPv6 subnet calculator, built on the ip6calc module."""

import argparse
import itertools
import json
import logging
import os
import random
import sys

import yaml

import ip6calc

# =============================================================================
# Constants and exceptions
# =============================================================================

PROG = 'ip6calc'
SCHEMA = 'ip6calc/v1'

FORMATS = ('human', 'json', 'yaml')

# exit codes
EXIT_ERROR = 1
EXIT_INVALID_INPUT = 2
EXIT_OVERLAP = 3
EXIT_SPLIT_TOO_BIG = 4

# split size thresholds, overridden by the environment
DEFAULT_SPLIT_WARN_THRESHOLD = 1 << 14
DEFAULT_SPLIT_FORCE_THRESHOLD = 1 << 16

ENV_FORMAT = 'IP6CALC_FORMAT'
ENV_SPLIT_WARN = 'IP6CALC_SPLIT_WARN_THRESHOLD'
ENV_SPLIT_FORCE = 'IP6CALC_SPLIT_FORCE_THRESHOLD'

COLOR_ON = '\033[36m'
COLOR_OFF = '\033[0m'

LOGGER = logging.getLogger(__name__)

class SplitTooLargeError(ValueError):
    """A split needs --force because of the number of subnets."""

class OverlapError(ValueError):
    """Two networks overlap, and overlaps were not allowed."""

    def __init__(self, a, b):
        super().__init__('overlap detected: %s %s' % (a, b))
        self.a = a
        self.b = b

_INVALID_INPUT_ERRORS = (
    ip6calc.AddressValueError,
    ip6calc.CIDRValueError,
    ip6calc.PrefixValueError,
    ip6calc.SplitPrefixValueError,
    ip6calc.RangeValueError,
    ip6calc.EmptyInputError,
)
_SPLIT_SIZE_ERRORS = (SplitTooLargeError, ip6calc.SplitSizeError)

def exit_code(exc):
    """The process exit code for an exception."""
    if isinstance(exc, _INVALID_INPUT_ERRORS):
        return EXIT_INVALID_INPUT
    if isinstance(exc, _SPLIT_SIZE_ERRORS):
        return EXIT_SPLIT_TOO_BIG
    if isinstance(exc, OverlapError):
        return EXIT_OVERLAP
    return EXIT_ERROR

def get_threshold(name, fallback):
    """Read a positive integer from the environment, or use fallback."""
    value = os.environ.get(name, '')
    try:
        n = int(value)
    except ValueError:
        return fallback
    return n if n > 0 else fallback

def format_host_count(n):
    """Describe a host count three ways.

    Returns:
        A tuple (raw, power, approx): the decimal count, '2^k' if the
        count is a power of two (else ''), and an approximation such as
        '1.84e19'.
    """
    raw = str(n)
    power = ''
    if n > 0 and n & (n - 1) == 0:
        power = '2^%d' % (n.bit_length() - 1)
    if n == 0:
        approx = '0'
    else:
        exp = len(raw) - 1
        approx = '%.2fe%d' % (n / 10**exp, exp)
    return raw, power, approx

# =============================================================================
# Output rendering
# =============================================================================

class Renderer:
    """Writes command results in the selected output format."""

    def __init__(self, out, fmt='human', color=False, table=False,
                 quiet=False, no_header=False):
        self.out = out
        self.format = fmt
        self.color = color
        self.table = table
        self.quiet = quiet
        self.no_header = no_header

    @property
    def human(self):
        return self.format == 'human'

    def colorize(self, txt):
        if not self.color or not self.human:
            return txt
        return COLOR_ON + txt + COLOR_OFF

    def _with_schema(self, value):
        if isinstance(value, dict):
            return dict(value, schema=SCHEMA)
        return {'schema': SCHEMA, 'data': value}

    def line(self, txt):
        """Write one line of human output."""
        self.out.write(txt + '\n')

    def render(self, value):
        """Write a string, list of strings or dict."""
        if self.format == 'json':
            json.dump(self._with_schema(value), self.out, indent=2)
            self.out.write('\n')
        elif self.format == 'yaml':
            yaml.safe_dump(self._with_schema(value), self.out,
                           default_flow_style=False, sort_keys=False)
        elif self.quiet:
            return
        elif isinstance(value, list):
            self._render_list(value)
        elif isinstance(value, dict):
            for key, val in value.items():
                self.line('%s: %s' % (key, val))
        else:
            self.line(str(value))

    def _render_list(self, values):
        if not self.table:
            for value in values:
                self.line(str(value))
            return
        width = max((len(str(v)) for v in values), default=0)
        if values and not self.no_header:
            self.line('%4s  %-*s' % ('Idx', width, 'Value'))
        for i, value in enumerate(values, 1):
            self.line('%4d  %-*s' % (i, width, value))

# =============================================================================
# Commands
# =============================================================================

def _stdin_lines(stdin):
    """Non-empty stripped lines from stdin, or [] if it is a terminal."""
    if stdin is None or stdin.isatty():
        return []
    return [line.strip() for line in stdin if line.strip()]

def _networks(args):
    return [ip6calc.IPv6Network(arg) for arg in args]

def cmd_info(args, renderer):
    arg = args.target
    if arg is None:
        lines = _stdin_lines(args.stdin)
        if not lines:
            raise ValueError('no input')
        arg = lines[0]
    if '/' in arg:
        net = ip6calc.IPv6Network(arg)
        raw, power, approx = format_host_count(net.num_addresses)
        renderer.render({
            'network': str(net.network_address),
            'prefix_length': net.prefixlen,
            'first_host': str(net.first_host),
            'last_host': str(net.last_host),
            'host_count': raw,
            'host_count_power': power,
            'host_count_approx': approx,
        })
        return
    addr = ip6calc.IPv6Address(arg)
    renderer.render({
        'address': str(addr),
        'expanded': addr.exploded_upper if args.upper else addr.exploded,
        'reverse': addr.reverse_dns,
    })

def cmd_expand(args, renderer):
    addrs = [ip6calc.IPv6Address(a)
             for a in args.addresses or _stdin_lines(args.stdin)]
    renderer.render([a.exploded_upper if args.upper else a.exploded
                     for a in addrs])

def cmd_compress(args, renderer):
    renderer.render([str(ip6calc.IPv6Address(a))
                     for a in args.addresses or _stdin_lines(args.stdin)])

def cmd_split(args, renderer):
    net = ip6calc.IPv6Network(args.cidr)
    preflen = args.new_prefix
    if not net.prefixlen <= preflen <= ip6calc.IPV6LENGTH:
        raise ip6calc.SplitPrefixValueError(
                'invalid --new-prefix: must be >= original (%d) and <= 128' %
                net.prefixlen)
    diff = preflen - net.prefixlen
    parts = 1 << diff
    warn = get_threshold(ENV_SPLIT_WARN, DEFAULT_SPLIT_WARN_THRESHOLD)
    force = get_threshold(ENV_SPLIT_FORCE, DEFAULT_SPLIT_FORCE_THRESHOLD)
    if parts > force and not args.force:
        raise SplitTooLargeError(
                'split: too many subnets (%d) without --force' % parts)
    if parts > warn and renderer.human and not args.force:
        LOGGER.warning('generating %d subnets (use --force to suppress)',
                       parts)
    # stream large human output instead of building the whole list
    if (parts > force // 2 and renderer.human and not args.force and
            not renderer.table and not renderer.quiet):
        subnets = net.subnet_iterator(preflen)
        every = max(parts // 10, 1)
        for count, sub in enumerate(subnets, 1):
            renderer.line(str(sub))
            if count % every == 0:
                LOGGER.info('progress: %d/%d (%.0f%%)',
                            count, parts, count * 100 / parts)
        return
    renderer.render([str(sub) for sub in net.split(preflen)])

def cmd_summarize(args, renderer):
    nets = _networks(args.cidrs)
    if args.fail_on_overlap:
        for a, b in itertools.combinations(nets, 2):
            if a.overlaps(b):
                raise OverlapError(a, b)
    renderer.render([str(net) for net in ip6calc.summarize(nets)])

def cmd_reverse(args, renderer):
    name = ip6calc.IPv6Address(args.address).reverse_dns
    if args.zone:
        name = name.rstrip('.')
    renderer.render(name)

def cmd_to_int(args, renderer):
    renderer.render(str(int(ip6calc.IPv6Address(args.address))))

def cmd_from_int(args, renderer):
    renderer.render(str(ip6calc.IPv6Address(args.integer)))

def cmd_range(args, renderer):
    bounds = args.range.split('-')
    if len(bounds) != 2:
        raise ip6calc.RangeValueError('invalid range format: %r' %
                                      (args.range,))
    first, last = (ip6calc.IPv6Address(b) for b in bounds)
    renderer.render([str(net) for net in ip6calc.cover_range(first, last)])

def cmd_supernet(args, renderer):
    renderer.render(str(ip6calc.supernet(_networks(args.cidrs))))

def cmd_enumerate(args, renderer):
    net = ip6calc.IPv6Network(args.cidr)
    addrs = itertools.islice(net.addresses(args.stride), args.limit)
    renderer.render([str(addr) for addr in addrs])

def cmd_random_address(args, renderer):
    net = ip6calc.IPv6Network(args.cidr)
    rng = random.Random(args.seed)
    renderer.render([str(ip6calc.random_address(net, rng))
                     for _ in range(args.count)])

def cmd_random_subnet(args, renderer):
    net = ip6calc.IPv6Network(args.cidr)
    rng = random.Random(args.seed)
    renderer.render([str(ip6calc.random_subnet(net, args.new_prefix, rng))
                     for _ in range(args.count)])

def cmd_diff(args, renderer):
    overlaps, gaps = ip6calc.diff_networks(_networks(args.cidrs))
    if renderer.human:
        lines = [renderer.colorize('overlap: ') + '%s %s' % pair
                 for pair in overlaps]
        lines += [renderer.colorize('gap: ') + '%s-%s' % gap for gap in gaps]
        renderer.render(lines)
        return
    renderer.render({
        'overlaps': ['%s %s' % pair for pair in overlaps],
        'gaps': [{'start': str(first), 'end': str(last)}
                 for first, last in gaps],
    })

def cmd_version(args, renderer):
    renderer.render({'version': ip6calc.__version__})

# =============================================================================
# Argument parsing
# =============================================================================

def _positive_int(txt):
    try:
        n = int(txt)
    except ValueError:
        raise argparse.ArgumentTypeError('not an integer: %r' % (txt,))
    if n <= 0:
        raise argparse.ArgumentTypeError('must be > 0: %r' % (txt,))
    return n

def _decimal_int(txt):
    if not ip6calc.isdecimal(txt):
        raise argparse.ArgumentTypeError('invalid integer: %r' % (txt,))
    return int(txt)

def build_parser():
    """Build the argument parser, with one subparser per command."""
    parser = argparse.ArgumentParser(
            prog=PROG,
            description='IPv6 address and network calculations '
                        '(expand, split, summarize, arithmetic, etc).')
    parser.add_argument('-o', '--output', choices=FORMATS, default=None,
                        help='output format (default: $%s or human)' %
                             ENV_FORMAT)
    parser.add_argument('--color', action='store_true',
                        help='colorize human output')
    parser.add_argument('--table', action='store_true',
                        help='tabular human output where applicable')
    parser.add_argument('--quiet', action='store_true',
                        help='suppress human output')
    parser.add_argument('--no-header', action='store_true',
                        help='omit headers in tabular output')
    parser.add_argument('--upper', action='store_true',
                        help='use uppercase expanded form where relevant')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='log progress (-v) or debug information (-vv)')
    sub = parser.add_subparsers(dest='command', metavar='COMMAND')
    sub.required = True

    p = sub.add_parser('info', help='show information about an address '
                                    'or network')
    p.add_argument('target', nargs='?', help='IPv6 address or CIDR')
    p.set_defaults(func=cmd_info)

    p = sub.add_parser('expand', help='expand compressed IPv6 address(es)')
    p.add_argument('addresses', nargs='*', metavar='ADDRESS')
    p.set_defaults(func=cmd_expand)

    p = sub.add_parser('compress', help='compress IPv6 address(es)')
    p.add_argument('addresses', nargs='*', metavar='ADDRESS')
    p.set_defaults(func=cmd_compress)

    p = sub.add_parser('split', help='split a network into smaller subnets')
    p.add_argument('cidr')
    p.add_argument('--new-prefix', type=int, required=True,
                   help='prefix length of the subnets')
    p.add_argument('--force', action='store_true',
                   help='proceed even if the subnet count is large')
    p.set_defaults(func=cmd_split)

    p = sub.add_parser('summarize', help='summarize a list of CIDRs')
    p.add_argument('cidrs', nargs='+', metavar='CIDR')
    p.add_argument('--fail-on-overlap', action='store_true',
                   help='fail if any CIDRs overlap')
    p.set_defaults(func=cmd_summarize)

    p = sub.add_parser('reverse', help='reverse DNS ip6.arpa name')
    p.add_argument('address')
    p.add_argument('--zone', action='store_true',
                   help='omit the trailing dot, for zone files')
    p.set_defaults(func=cmd_reverse)

    p = sub.add_parser('to-int', help='convert an address to an integer')
    p.add_argument('address')
    p.set_defaults(func=cmd_to_int)

    p = sub.add_parser('from-int', help='convert an integer to an address')
    p.add_argument('integer', type=_decimal_int)
    p.set_defaults(func=cmd_from_int)

    p = sub.add_parser('range', help='cover START-END with minimal CIDRs')
    p.add_argument('range', metavar='START-END')
    p.set_defaults(func=cmd_range)

    p = sub.add_parser('supernet', help='smallest CIDR containing all')
    p.add_argument('cidrs', nargs='+', metavar='CIDR')
    p.set_defaults(func=cmd_supernet)

    p = sub.add_parser('enumerate', help='enumerate addresses in a CIDR')
    p.add_argument('cidr')
    p.add_argument('--limit', type=_positive_int, default=10,
                   help='maximum number of addresses')
    p.add_argument('--stride', type=_positive_int, default=1,
                   help='step between addresses')
    p.set_defaults(func=cmd_enumerate)

    p = sub.add_parser('random', help='random address or subnet')
    rsub = p.add_subparsers(dest='kind', metavar='KIND')
    rsub.required = True
    r = rsub.add_parser('address', help='random address(es) in a CIDR')
    r.add_argument('cidr')
    r.add_argument('--count', type=_positive_int, default=1)
    r.add_argument('--seed', type=int, default=None)
    r.set_defaults(func=cmd_random_address)
    r = rsub.add_parser('subnet', help='random subnet(s) in a CIDR')
    r.add_argument('cidr')
    r.add_argument('--new-prefix', type=int, required=True)
    r.add_argument('--count', type=_positive_int, default=1)
    r.add_argument('--seed', type=int, default=None)
    r.set_defaults(func=cmd_random_subnet)

    p = sub.add_parser('diff', help='show overlaps and gaps between CIDRs')
    p.add_argument('cidrs', nargs='+', metavar='CIDR')
    p.set_defaults(func=cmd_diff)

    p = sub.add_parser('version', help='print version information')
    p.set_defaults(func=cmd_version)
    return parser

def _output_format(args):
    if args.output:
        return args.output
    env = os.environ.get(ENV_FORMAT, '')
    return env if env in FORMATS else 'human'

def setup_logging(verbose, stream):
    """Log to stream, at WARNING, INFO or DEBUG level."""
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(stream=stream, level=level, force=True,
                        format=PROG + ': %(levelname)s: %(message)s')

def main(argv=None, stdout=None, stderr=None, stdin=None):
    """Run the command line tool.

    Args:
        argv: the arguments, without the program name; sys.argv by default
        stdout, stderr, stdin: streams; the sys streams by default

    Returns:
        The process exit code.
    """
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return exc.code
    args.stdin = stdin if stdin is not None else sys.stdin
    setup_logging(args.verbose, stderr)
    renderer = Renderer(stdout, _output_format(args), color=args.color,
                        table=args.table, quiet=args.quiet,
                        no_header=args.no_header)
    try:
        args.func(args, renderer)
    except (ValueError, TypeError) as exc:
        stderr.write('%s: %s\n' % (PROG, exc))
        return exit_code(exc)
    return 0

def run():
    """Console script entry point."""
    sys.exit(main())

if __name__ == '__main__':
    run()
