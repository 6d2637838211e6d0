import collections.abc
import dataclasses
import logging

import ocinorm.config as oconf
import ocinorm.grammar as og
import ocinorm.model as om
import ocinorm.platform as op
import ocinorm.reference as oref

logger = logging.getLogger(__name__)

# type-alias for typehints
image_reference = str


def _parse(
    raw: image_reference,
    grammar: og.ReferenceGrammar,
) -> om.ParsedReference:
    if not isinstance(raw, str):
        raise ValueError(raw)

    if '://' in raw:
        raise om.UnsupportedScheme(f'transport-prefixed references are not supported: {raw=}')

    if raw.startswith('@'):
        raise om.MissingRepository(f'digest must be qualified with a repository: {raw=}')

    try:
        parsed = grammar.parse(raw)
    except og.GrammarError as ge:
        raise om.MalformedReference(str(ge)) from ge

    # so str() of derived references is printed by the same grammar
    return dataclasses.replace(parsed, grammar=grammar)


def normalise_name(
    raw: image_reference,
    cfg: oconf.NormalisationCfg=oconf.NormalisationCfg(),
    grammar: og.ReferenceGrammar=None,
) -> om.ImageReference:
    '''
    returns the canonical form of the given image reference:

    - the reference is host-qualified (`cfg.default_registry` is prepended if not)
    - tags are dropped from digested references
    - `cfg.default_tag` is set if neither tag nor digest is present

    examples (w/ default cfg):

    busybox                         -> localhost/busybox:latest
    docker.io/busybox               -> docker.io/library/busybox:latest
    example.org/busybox:1@sha256:.. -> example.org/busybox@sha256:..

    `str()` of the returned value yields the canonical string. normalisation is idempotent.

    raises `ocinorm.model.InvalidReference` (or a subclass) if the reference is invalid
    '''
    if not grammar:
        grammar = og.default_grammar()

    parsed = _parse(raw=raw, grammar=grammar)

    qualified = oref.qualify(
        reference=parsed,
        default_registry=cfg.default_registry,
    )
    canonical = oref.reconcile(
        reference=qualified,
        default_tag=cfg.default_tag,
    )

    canonical_str = grammar.stringify(canonical)

    # prepending the default registry might e.g. exceed max name length
    try:
        grammar.parse(canonical_str)
    except og.GrammarError as ge:
        raise om.MalformedReference(f'{raw=} does not normalise to a valid reference: {ge}') from ge

    logger.debug(f'normalised {raw=} to {canonical_str=}')

    return canonical


def normalise_tagged_digested_string(
    raw: image_reference,
    grammar: og.ReferenceGrammar=None,
) -> tuple[str, om.ImageReference]:
    '''
    strips the tag from references that are both tagged and digested, e.g.:

    fedora:latest@sha256:.. -> fedora@sha256:..

    other references are returned unchanged (in particular, neither a registry nor a default tag
    is added).

    returns both the string-representation and the structured reference (whose string
    representation is identical, also if a custom grammar is passed).
    '''
    if not grammar:
        grammar = og.default_grammar()

    parsed = _parse(raw=raw, grammar=grammar)

    reference = oref.reconcile(
        reference=parsed,
        default_tag=None,
    )

    return grammar.stringify(reference), reference


def normalise_platform(
    os: str,
    arch: str,
    variant: str,
) -> tuple[str, str, str]:
    '''
    see `ocinorm.platform.normalise`
    '''
    return op.normalise(
        os=os,
        arch=arch,
        variant=variant,
    )


def to_name_tag_pairs(
    references: collections.abc.Iterable[om.ImageReference],
) -> list[om.NameTagPair]:
    '''
    splits the given references into name/tag pairs. missing tags (or names) are represented as
    `<none>`. Always returns at least one pair.
    '''
    pairs = [
        om.NameTagPair(
            name=reference.name,
            tag=reference.tag or om.NONE_MARKER,
            reference=reference,
        ) for reference in references
    ]

    if not pairs:
        pairs.append(om.NameTagPair(name=om.NONE_MARKER, tag=om.NONE_MARKER))

    return pairs
