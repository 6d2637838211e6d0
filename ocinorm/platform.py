import collections.abc
import enum
import logging
import platform
import re
import sys
import types
import typing

import ocinorm.model as om

logger = logging.getLogger(__name__)


class OperatingSystem(enum.Enum):
    '''
    well-known values of `os` in platform-triples (as used in oci image-indices). Those are the
    GOOS-values of the go toolchain.
    '''
    AIX = 'aix'
    ANDROID = 'android'
    DARWIN = 'darwin'
    DRAGONFLY = 'dragonfly'
    FREEBSD = 'freebsd'
    ILLUMOS = 'illumos'
    IOS = 'ios'
    JS = 'js'
    LINUX = 'linux'
    NETBSD = 'netbsd'
    OPENBSD = 'openbsd'
    PLAN9 = 'plan9'
    SOLARIS = 'solaris'
    WASIP1 = 'wasip1'
    WINDOWS = 'windows'


class Architecture(enum.Enum):
    '''
    well-known (normalised) values of `arch` in platform-triples (GOARCH-values). Aliases such as
    `aarch64` or `x86_64` are not contained (see `ARCH_ALIASES`).
    '''
    I386 = '386'
    AMD64 = 'amd64'
    ARM = 'arm'
    ARM64 = 'arm64'
    LOONG64 = 'loong64'
    MIPS = 'mips'
    MIPS64 = 'mips64'
    MIPS64LE = 'mips64le'
    MIPSLE = 'mipsle'
    PPC64 = 'ppc64'
    PPC64LE = 'ppc64le'
    RISCV64 = 'riscv64'
    S390X = 's390x'
    WASM = 'wasm'


KNOWN_OS_VALUES = frozenset(o.value for o in OperatingSystem)
KNOWN_ARCH_VALUES = frozenset(a.value for a in Architecture)

OS_ALIASES = types.MappingProxyType({
    'macos': OperatingSystem.DARWIN.value,
})

ARCH_ALIASES = types.MappingProxyType({
    'aarch64': Architecture.ARM64.value,
    'x86_64': Architecture.AMD64.value,
    'armhf': Architecture.ARM.value,
    'armel': Architecture.ARM.value,
})

# variants implied by (unnormalised) architecture-names if no variant is given
ARCH_DEFAULT_VARIANTS = types.MappingProxyType({
    'armhf': 'v7',
    'armel': 'v6',
})

_numeric_variant = re.compile(r'[0-9]+')


def normalise(
    os: str,
    arch: str,
    variant: str,
) -> tuple[str, str, str]:
    '''
    returns the normalised equivalent of the given platform triple, e.g.:

    (linux, aarch64, '') -> (linux, arm64, '')
    (linux, armhf, '')   -> (linux, arm, v7)
    (linux, arm64, 8)    -> (linux, arm64, v8)
    (MacOS, x86_64, '')  -> (darwin, amd64, '')

    this function never fails; values that are not known are passed through unchanged (except
    for os, which is always lower-cased).
    '''
    os = os or ''
    arch = arch or ''
    variant = variant or ''

    if os:
        os = os.lower()
        os = OS_ALIASES.get(os, os)

    if not variant and (default_variant := ARCH_DEFAULT_VARIANTS.get(arch)):
        variant = default_variant
    elif _numeric_variant.fullmatch(variant):
        variant = f'v{variant}'

    arch = ARCH_ALIASES.get(arch, arch)

    return os, arch, variant


def normalise_triple(platform_triple: om.PlatformTriple) -> om.PlatformTriple:
    return om.PlatformTriple(*normalise(
        os=platform_triple.os,
        arch=platform_triple.arch,
        variant=platform_triple.variant,
    ))


def parse_platform(platform_expr: str) -> om.PlatformTriple:
    '''
    splits a platform-expression of the form os/arch[/variant] into a (not normalised)
    PlatformTriple. Missing parts are returned as empty strings.
    '''
    parts = platform_expr.split('/')
    if len(parts) > 3:
        raise ValueError(f'invalid platform expression {platform_expr=}.'
                          ' expression must have the format os[/architecture[/variant]]')

    parts += [''] * (3 - len(parts))

    return om.PlatformTriple(*parts)


def local_platform() -> om.PlatformTriple:
    '''
    returns the (normalised) platform of the running interpreter
    '''
    osname = sys.platform
    if osname == 'win32':
        osname = 'windows'

    return normalise_triple(om.PlatformTriple(
        os=osname,
        arch=platform.machine().lower(),
    ))


class PlatformFilter:
    @staticmethod
    def create(
        included_platforms: collections.abc.Iterable[str],
    ) -> typing.Callable[[om.PlatformTriple], bool]:
        matchers = []
        for included_platform in included_platforms:
            matchers.append(PlatformFilter._parse_expr(included_platform))

        def filter(platform_to_match: om.PlatformTriple) -> bool:
            for m in matchers:
                if PlatformFilter._match(m, platform_to_match):
                    return True

            return False

        return filter

    @staticmethod
    def _parse_expr(platform_expr: str) -> dict:
        splitted = platform_expr.split('/')
        if len(splitted) < 2 or len(splitted) > 3:
            raise ValueError(f'invalid platform expression {platform_expr=}.'
                              ' expression must have the format os/architecture[/variant]')

        if len(splitted) == 2:
            splitted.append('*')

        os, architecture, variant = splitted

        # wildcards must not be touched by normalisation
        normalised_os, normalised_arch, normalised_variant = normalise(
            os='' if os == '*' else os,
            arch='' if architecture == '*' else architecture,
            variant='' if variant == '*' else variant,
        )
        if os != '*':
            os = normalised_os
        if architecture != '*':
            architecture = normalised_arch
        if variant != '*' or normalised_variant:
            # e.g. `linux/armhf` implies variant v7
            variant = normalised_variant

        if os != '*' and os not in KNOWN_OS_VALUES:
            raise ValueError(f'invalid os in platform expression {platform_expr=}.'
                             f' allowed values are {["*"] + sorted(KNOWN_OS_VALUES)}')

        if architecture != '*' and architecture not in KNOWN_ARCH_VALUES:
            raise ValueError(f'invalid architecture in platform expression {platform_expr=}.'
                             f' allowed values are {["*"] + sorted(KNOWN_ARCH_VALUES)}')

        return {
            'os': os,
            'architecture': architecture,
            'variant': variant,
        }

    @staticmethod
    def _match(m: dict, p: om.PlatformTriple) -> bool:
        normalised_p = normalise_triple(p)
        return ((m['os'] == '*' or m['os'] == normalised_p.os) and
                (m['architecture'] == '*' or m['architecture'] == normalised_p.arch) and
                (m['variant'] == '*' or m['variant'] == normalised_p.variant)
               )
