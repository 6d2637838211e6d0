import argparse
import json
import logging
import sys
import textwrap

import dacite
import yaml

import ocinorm
import ocinorm.config
import ocinorm.log
import ocinorm.platform


def _print(parsed, results: list[dict], plain: list[str]):
    if parsed.format == 'plain':
        for line in plain:
            print(line)
    elif parsed.format == 'json':
        print(json.dumps(
            obj=results,
            indent=2,
        ))
    elif parsed.format == 'yaml':
        print(yaml.safe_dump(results), end='')
    else:
        raise ValueError(parsed.format) # this is a bug


def name(parsed, cfg: ocinorm.config.NormalisationCfg):
    references = [
        ocinorm.normalise_name(raw=image_reference, cfg=cfg)
        for image_reference in parsed.image_reference
    ]

    _print(
        parsed=parsed,
        results=[reference.as_dict() for reference in references],
        plain=[str(reference) for reference in references],
    )


def digested(parsed, cfg: ocinorm.config.NormalisationCfg):
    results = [
        ocinorm.normalise_tagged_digested_string(raw=image_reference)
        for image_reference in parsed.image_reference
    ]

    _print(
        parsed=parsed,
        results=[reference.as_dict() for _, reference in results],
        plain=[normalised for normalised, _ in results],
    )


def platform(parsed, cfg: ocinorm.config.NormalisationCfg):
    if parsed.platform:
        platforms = [
            ocinorm.platform.normalise_triple(ocinorm.platform.parse_platform(platform_expr))
            for platform_expr in parsed.platform
        ]
    else:
        platforms = [ocinorm.platform.local_platform()]

    _print(
        parsed=parsed,
        results=[p.as_dict() for p in platforms],
        plain=[str(p) for p in platforms],
    )


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='ocinorm',
        description='normalise image references and platforms',
    )
    subcmd_parsers = parser.add_subparsers(
        title='commands',
        required=True,
    )

    parser.add_argument(
        '--cfg',
        default=None,
        help=f'path to configuration file (defaults to ${ocinorm.config.ENV_CFG_PATH})',
    )
    parser.add_argument(
        '--format',
        required=False,
        default='plain',
        choices=('plain', 'json', 'yaml'),
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        default=False,
    )

    name_parser = subcmd_parsers.add_parser(
        'name',
        aliases=('n',),
        help='print canonical (host-qualified, tagged or digested) image references',
    )
    name_parser.set_defaults(callable=name)
    name_parser.add_argument(
        'image_reference',
        nargs='+',
    )

    digested_parser = subcmd_parsers.add_parser(
        'digested',
        aliases=('d',),
        help='strip tags from tagged and digested image references',
    )
    digested_parser.set_defaults(callable=digested)
    digested_parser.add_argument(
        'image_reference',
        nargs='+',
    )

    platform_parser = subcmd_parsers.add_parser(
        'platform',
        aliases=('p',),
        help='print normalised platforms',
    )
    platform_parser.set_defaults(callable=platform)
    platform_parser.add_argument(
        'platform',
        nargs='*',
        help=textwrap.dedent(
            '''\
            expected format: OS/ARCH[/VARIANT] (e.g. linux/aarch64). If omitted, the local
            platform is printed.
            '''),
    )

    parsed = parser.parse_args(argv)

    if parsed.verbose:
        ocinorm.log.configure_default_logging(stdout_level=logging.DEBUG)

    try:
        cfg = ocinorm.config.load_cfg(path=parsed.cfg)
    except (OSError, ValueError, dacite.DaciteError, yaml.YAMLError) as e:
        print(f'Error: invalid configuration: {e}', file=sys.stderr)
        sys.exit(1)

    try:
        parsed.callable(
            parsed=parsed,
            cfg=cfg,
        )
    except ValueError as ve:
        # ocinorm.model.InvalidReference, or platform-expressions w/ too many components
        print(f'Error: {ve}', file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
