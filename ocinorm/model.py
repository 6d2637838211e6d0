import dataclasses
import enum

NONE_MARKER = '<none>'


class InvalidReference(ValueError):
    '''
    base class for errors raised if a user-supplied image reference cannot be normalised.

    all subclasses are deterministic (retrying with the same input will yield the same error)
    and should be presented to callers as caller-error.
    '''
    pass


class MalformedReference(InvalidReference):
    pass


class UnsupportedScheme(InvalidReference):
    '''
    raised for transport-qualified references (e.g. `docker://alpine`). Those are never parsed.
    '''
    pass


class MissingRepository(InvalidReference):
    pass


class TagType(enum.Enum):
    SYMBOLIC = 'symbolic'
    DIGEST = 'digest'
    MIXED = 'mixed'
    NO_TAG = 'no_tag'


@dataclasses.dataclass(frozen=True)
class Digest:
    algorithm: str
    hexdigest: str

    def __str__(self) -> str:
        return f'{self.algorithm}:{self.hexdigest}'


@dataclasses.dataclass(frozen=True, kw_only=True)
class ImageReference:
    '''
    structured (and immutable) image reference

    instances returned from `ocinorm.normalise_name` are canonical: `registry` is always set, and
    at most one of `tag` and `digest` is set. Instances returned from the grammar are not
    (`registry` only reflects what was syntactically recognised as a host).

    the string representation is created by the printer of the grammar the reference was
    parsed with (`ocinorm.grammar.default_grammar()` if `grammar` is not set), i.e. `str(ref)`
    may be passed to that grammar's `parse` again.
    '''
    repository: tuple[str, ...]
    registry: str | None = None
    tag: str | None = None
    digest: Digest | None = None
    # ocinorm.grammar.ReferenceGrammar; not part of the reference's value
    grammar: object = dataclasses.field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if isinstance(self.repository, str):
            raise ValueError(f'repository must be a sequence of path segments: {self.repository=}')
        # frozen, hence we cannot simply assign
        object.__setattr__(self, 'repository', tuple(self.repository))

        if not self.repository:
            raise MissingRepository(f'image reference must have a repository: {self=}')

    @property
    def name(self) -> str:
        '''
        the reference's name (registry and repository), omitting tag and digest
        '''
        repository = '/'.join(self.repository)
        if self.registry:
            return f'{self.registry}/{repository}'
        return repository

    @property
    def tag_type(self) -> TagType:
        if self.tag and self.digest:
            return TagType.MIXED
        if self.digest:
            return TagType.DIGEST
        if self.tag:
            return TagType.SYMBOLIC
        return TagType.NO_TAG

    def as_dict(self) -> dict:
        raw = {
            'reference': str(self),
            'registry': self.registry,
            'repository': '/'.join(self.repository),
            'tag': self.tag,
            'digest': str(self.digest) if self.digest else None,
        }
        # absent values are omitted rather than emitted as null
        return {k: v for k, v in raw.items() if v is not None}

    def __str__(self) -> str:
        # ocinorm.grammar imports this module
        import ocinorm.grammar
        grammar = self.grammar or ocinorm.grammar.default_grammar()
        return grammar.stringify(self)


# output of ReferenceGrammar.parse; not yet qualified nor reconciled
ParsedReference = ImageReference


@dataclasses.dataclass(frozen=True)
class NameTagPair:
    name: str
    tag: str
    reference: ImageReference | None = None


@dataclasses.dataclass(frozen=True)
class PlatformTriple:
    '''
    the (os, architecture, variant) a container image targets

    values are not validated; see `ocinorm.platform.normalise_triple` for normalisation
    '''
    os: str
    arch: str
    variant: str = ''

    def as_dict(self) -> dict:
        raw = dataclasses.asdict(self)

        # consistent w/ oci-platform serialisation: omit rather than emit empty variant
        if not self.variant:
            del raw['variant']

        return raw

    def __str__(self) -> str:
        if self.variant:
            return f'{self.os}/{self.arch}/{self.variant}'
        return f'{self.os}/{self.arch}'
