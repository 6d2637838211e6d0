'''
image reference grammar (tokenising and printing of image references)

The grammar follows the one used by docker / containers tooling:

    reference := name [ ":" tag ] [ "@" digest ]
    name      := [ domain "/" ] path-component [ "/" path-component ]*
    domain    := host [ ":" port ]

Note that the grammar is ambiguous w.r.t. the first segment of a name (`ns/busybox` may either
be parsed as host `ns` or as path-component `ns`). The grammar prefers hosts; whether a host is
actually treated as registry is decided by `ocinorm.reference.qualify`.
'''

import abc
import functools
import logging
import re

import lark

import ocinorm.model as om

logger = logging.getLogger(__name__)

NAME_TOTAL_LENGTH_MAX = 255
TAG_LENGTH_MAX = 128

# hexdigest-lengths of digest-algorithms we accept (lowercase hex-encoding is required)
DIGEST_ALGORITHMS = {
    'sha256': 64,
    'sha384': 96,
    'sha512': 128,
}

# longest string that may possibly match (name:tag@algorithm:hexdigest); longer input is
# rejected before parsing, as parsing time grows superlinearly w/ length
REFERENCE_LENGTH_MAX = NAME_TOTAL_LENGTH_MAX + 1 + TAG_LENGTH_MAX + 1 + max(
    len(algorithm) + 1 + hexdigest_length
    for algorithm, hexdigest_length in DIGEST_ALGORITHMS.items()
)

TAG_REGEX = r'[A-Za-z0-9_][A-Za-z0-9_.-]{0,%d}' % (TAG_LENGTH_MAX - 1)

GRAMMAR_IMAGE_REF = r'''
reference: repository tag? digest?

?repository: qualified
           | path

qualified.2: domain "/" path
domain: HOST ( ":" PORT )?
path: PATH_COMPONENT ( "/" PATH_COMPONENT )*

tag: ":" TAG
digest: "@" ALGORITHM ":" ENCODED

HOST: /(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?)(?:\.(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?))*|\[[a-fA-F0-9:]+\]/
PORT: /[0-9]+/
PATH_COMPONENT: /[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*/
TAG: /%(tag)s/
ALGORITHM: /[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*/
ENCODED: /[0-9a-fA-F]{32,}/
''' % {'tag': TAG_REGEX}

_tag_pattern = re.compile(TAG_REGEX)


class GrammarError(ValueError):
    '''
    raised by ReferenceGrammar implementations for strings not matching the grammar
    '''
    pass


class ReferenceGrammar:
    '''
    tokenises and prints image references. Normalisation policies are layered on top of this
    (see `ocinorm.reference`), and will work with any implementation honouring this interface.

    implementations must be stateless (or at least safe for concurrent use), and printing must be
    stable, i.e. `stringify(parse(stringify(ref))) == stringify(ref)`.
    '''
    @abc.abstractmethod
    def parse(self, raw: str) -> om.ParsedReference:
        '''
        raises GrammarError if `raw` is not a valid image reference
        '''
        pass

    @abc.abstractmethod
    def stringify(self, reference: om.ImageReference) -> str:
        pass


class _ReferenceTransformer(lark.Transformer):
    def reference(self, children):
        (registry, repository), *suffixes = children

        tag = None
        digest = None
        for suffix in suffixes:
            if isinstance(suffix, om.Digest):
                digest = suffix
            else:
                tag = suffix

        return om.ImageReference(
            registry=registry,
            repository=repository,
            tag=tag,
            digest=digest,
        )

    def qualified(self, children):
        domain, (_, repository) = children
        return domain, repository

    def domain(self, children):
        return ':'.join(str(c) for c in children)

    def path(self, children):
        return None, tuple(str(c) for c in children)

    def tag(self, children):
        tag, = children
        return str(tag)

    def digest(self, children):
        algorithm, hexdigest = children
        return om.Digest(
            algorithm=str(algorithm),
            hexdigest=str(hexdigest),
        )


class LarkReferenceGrammar(ReferenceGrammar):
    def __init__(self):
        # instantiating the parser is comparatively expensive (compared to parsing); hence,
        # instances should be reused (see `default_grammar`)
        self._parser = lark.Lark(
            GRAMMAR_IMAGE_REF,
            start='reference',
            parser='earley',
            lexer='dynamic',
        )
        self._transformer = _ReferenceTransformer()

    def parse(self, raw: str) -> om.ParsedReference:
        if not isinstance(raw, str):
            raise ValueError(raw)
        if not raw:
            raise GrammarError('image reference must not be empty')
        if len(raw) > REFERENCE_LENGTH_MAX:
            raise GrammarError(
                f'image reference must not be longer than {REFERENCE_LENGTH_MAX} chars: '
                f'{raw[:64]=}...'
            )

        try:
            tree = self._parser.parse(raw)
        except lark.exceptions.UnexpectedInput as uie:
            if uie.column == -1:
                raise GrammarError(f'invalid reference format, at end: {raw=}') from uie
            raise GrammarError(f'invalid reference format, char {uie.column}: {raw=}') from uie

        reference: om.ImageReference = self._transformer.transform(tree)

        if len(reference.name) > NAME_TOTAL_LENGTH_MAX:
            raise GrammarError(
                f'repository name must not be longer than {NAME_TOTAL_LENGTH_MAX} chars: {raw=}'
            )

        if reference.digest:
            _validate_digest(reference.digest)

        return reference

    def stringify(self, reference: om.ImageReference) -> str:
        printed = reference.name

        if reference.tag:
            printed += f':{reference.tag}'
        if reference.digest:
            printed += f'@{reference.digest}'

        return printed


def is_valid_tag(tag: str) -> bool:
    return bool(_tag_pattern.fullmatch(tag))


def _validate_digest(digest: om.Digest):
    if not (expected_length := DIGEST_ALGORITHMS.get(digest.algorithm)):
        raise GrammarError(f'unsupported digest algorithm: {digest.algorithm=}')

    if len(digest.hexdigest) != expected_length:
        raise GrammarError(
            f'invalid digest length for {digest.algorithm}: expected {expected_length}, '
            f'got {len(digest.hexdigest)}'
        )

    if digest.hexdigest != digest.hexdigest.lower():
        raise GrammarError(f'digest must be lowercase hex: {str(digest)=}')


@functools.cache
def default_grammar() -> LarkReferenceGrammar:
    logger.debug('creating image reference parser')
    return LarkReferenceGrammar()
