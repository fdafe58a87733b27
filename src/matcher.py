"""
Core matching engine for catalog SKU lookup.

Matching Approach:
    - Parses the "name<TAB>sku" catalog and every standardized input line into the
      same structured shape: brand, model, storage, RAM, color, network
    - Normalizes text (lowercase, strip accents, collapse punctuation) and
      canonicalizes known model spellings ("not 13" -> "note 13", "C75X" -> "c75")
    - Scores every (line, catalog entry) pair with fixed attribute weights.
      All comparisons are exact after normalization; there is no fuzzy distance.

Scoring:
    - Different brand: BRAND_MISMATCH_SCORE, never compensated by other attributes
    - Model +5, storage +2, RAM +2, network +1 (or -2 when a 4G line meets a 5G SKU),
      color +0.5 (equal, or either side has no color)
    - Best candidate below MATCH_THRESHOLD (6.5) -> "no code"
    - Ties resolve to the first entry in catalog order

Result Ordering:
    - Matched results: brand priority (Xiaomi, Realme, Motorola, Samsung), then
      Portuguese collation of the catalog name
    - Unmatched results: input order, original line text
    - Lines without a recognizable brand are dropped before matching
"""

import logging
import re
import unicodedata
from dataclasses import asdict, dataclass
from enum import Enum
from functools import lru_cache
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
MATCH_THRESHOLD = 6.5           # Minimum best-candidate score to accept a SKU
BRAND_MISMATCH_SCORE = -999.0   # Always below threshold

MODEL_WEIGHT = 5.0
STORAGE_WEIGHT = 2.0
RAM_WEIGHT = 2.0
NETWORK_MATCH_WEIGHT = 1.0
NETWORK_5G_PENALTY = -2.0       # Line wants 4G (or says nothing), entry is 5G
COLOR_WEIGHT = 0.5

NO_CODE_SKU = "no code"

NETWORK_4G = "4g"
NETWORK_5G = "5g"
DEFAULT_NETWORK = NETWORK_4G

MAX_CATALOG_ENTRIES = 20000
MAX_INPUT_LINES = 5000

PROGRESS_EVERY = 50


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class MatcherInputError(ValueError):
    """Input the engine refuses to process at all."""


class InputEncodingError(MatcherInputError):
    """Input is not text and cannot be decoded as UTF-8."""


class InputLimitError(MatcherInputError):
    """Catalog or line count exceeds the configured safety limit."""


# ---------------------------------------------------------------------------
# Brand and color vocabularies
# ---------------------------------------------------------------------------

class Brand(str, Enum):
    XIAOMI = "Xiaomi"
    REALME = "Realme"
    MOTOROLA = "Motorola"
    SAMSUNG = "Samsung"
    UNKNOWN = "Unknown"


BRAND_PRIORITY: Tuple[Brand, ...] = (Brand.XIAOMI, Brand.REALME, Brand.MOTOROLA, Brand.SAMSUNG)

# Leading token -> brand. Brand names are removed from the model segment,
# sub-brands stay in it ("redmi 14c", "galaxy a15", "moto g84", "poco x6").
BRAND_NAMES: Dict[str, Brand] = {b.value.lower(): b for b in BRAND_PRIORITY}
SUB_BRANDS: Dict[str, Brand] = {
    'redmi': Brand.XIAOMI,
    'poco': Brand.XIAOMI,
    'galaxy': Brand.SAMSUNG,
    'moto': Brand.MOTOROLA,
}


class Color(str, Enum):
    PRETO = "preto"
    AZUL = "azul"
    VERDE = "verde"
    DOURADO = "dourado"
    PRATA = "prata"
    ROXO = "roxo"
    BRANCO = "branco"
    CINZA = "cinza"
    ROSA = "rosa"
    VERMELHO = "vermelho"
    AMARELO = "amarelo"


# Normalized token -> canonical color (English and Portuguese spellings)
COLOR_ALIASES: Dict[str, Color] = {
    'preto': Color.PRETO, 'preta': Color.PRETO, 'black': Color.PRETO, 'negro': Color.PRETO,
    'azul': Color.AZUL, 'blue': Color.AZUL, 'starblue': Color.AZUL,
    'verde': Color.VERDE, 'green': Color.VERDE,
    'dourado': Color.DOURADO, 'dourada': Color.DOURADO, 'gold': Color.DOURADO,
    'prata': Color.PRATA, 'prateado': Color.PRATA, 'silver': Color.PRATA,
    'roxo': Color.ROXO, 'roxa': Color.ROXO, 'purple': Color.ROXO, 'violet': Color.ROXO,
    'lilas': Color.ROXO,
    'branco': Color.BRANCO, 'branca': Color.BRANCO, 'white': Color.BRANCO,
    'cinza': Color.CINZA, 'gray': Color.CINZA, 'grey': Color.CINZA,
    'rosa': Color.ROSA, 'pink': Color.ROSA,
    'vermelho': Color.VERMELHO, 'red': Color.VERMELHO,
    'amarelo': Color.AMARELO, 'yellow': Color.AMARELO,
}


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CatalogEntry:
    sku: str
    name: str
    brand: Brand
    model_base: str
    storage_gb: int = 0
    ram_gb: int = 0
    color: Optional[Color] = None
    network: str = NETWORK_4G


@dataclass(frozen=True)
class ParsedLine:
    raw: str
    brand: Brand
    model_base: str
    storage_gb: int = 0
    ram_gb: int = 0
    color: Optional[Color] = None
    network: Optional[str] = None   # None = unspecified, scored as DEFAULT_NETWORK
    price_digits: str = "0"


@dataclass(frozen=True)
class MatchResult:
    sku: str
    name: str
    cost_price_digits: str
    score: float = 0.0

    @property
    def matched(self) -> bool:
        return self.sku != NO_CODE_SKU


@dataclass(frozen=True)
class MatchReport:
    details: Tuple[MatchResult, ...]
    with_code: Tuple[MatchResult, ...]
    no_code: Tuple[MatchResult, ...]


# ---------------------------------------------------------------------------
# String normalization
# ---------------------------------------------------------------------------

_NON_ALNUM = re.compile(r'(?:[^\w+]|_)+')


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize('NFKD', text)
    return ''.join(c for c in decomposed if not unicodedata.combining(c))


@lru_cache(maxsize=50000)
def normalize_text(text: str) -> str:
    """
    Generic normalization used by every parser.

    Steps:
        1. Strip diacritics ("Lilás" -> "Lilas")
        2. Lowercase
        3. Collapse every run of non-alphanumeric characters except "+" to one space
        4. Trim

    Idempotent: normalize_text(normalize_text(s)) == normalize_text(s).
    """
    if not isinstance(text, str):
        return ''
    s = strip_accents(text).lower()
    s = _NON_ALNUM.sub(' ', s)
    return s.strip()


_REGION_TOKENS = re.compile(r'\b(?:global|chine(?:s|se|sa|sas)?|versao|version)\b')
_NOT_BEFORE_DIGIT = re.compile(r'\bnot\s*(?=\d)')
_NOT_WORD = re.compile(r'\bnot\b')
_NOTE_GLUED = re.compile(r'\bnote(?=\d)')
_PRO_PLUS = re.compile(r'\bpro\s*\+')
_REALME_C75 = re.compile(r'\b(?:realme\s*)?(?:c\s*75x?|75x)\b')
_NETWORK_WORD = re.compile(r'\b[45]g\b')
_SPACES = re.compile(r'\s+')


@lru_cache(maxsize=50000)
def normalize_model(brand: Brand, raw_model: str) -> str:
    """
    Canonical model key for a brand and the raw text between brand and storage.

    Rules, in order (later rules see the output of earlier ones):
        1. normalize_text
        2. drop "global", "chines"/"chinesa"/"chinese", "versao"/"version"
        3. "not14" / "not 13" / standalone "not" -> "note 14" / "note 13" / "note"
        4. "pro+", "pro +5g", "pro+5g" -> "pro plus" (the 5g token is handled by rule 7)
        5. Realme only: "c75x", "realmec75", "realme c75x", "75x" -> "c75"
        6. Xiaomi only: model starting with a digit gets "redmi " prepended
        7. standalone "4g" / "5g" tokens removed (network is scored separately)
    """
    m = normalize_text(raw_model)
    m = _REGION_TOKENS.sub(' ', m)

    m = _NOT_BEFORE_DIGIT.sub('note ', m)
    m = _NOT_WORD.sub('note', m)
    m = _NOTE_GLUED.sub('note ', m)

    m = _PRO_PLUS.sub('pro plus ', m)
    m = _SPACES.sub(' ', m).strip()

    if brand is Brand.REALME:
        m = _REALME_C75.sub('c75', m)

    if brand is Brand.XIAOMI and m[:1].isdigit():
        m = f'redmi {m}'

    m = _NETWORK_WORD.sub(' ', m)
    return _SPACES.sub(' ', m).strip()


# ---------------------------------------------------------------------------
# Attribute extraction (shared by catalog and line parsers)
# ---------------------------------------------------------------------------

_GB_TOKEN = re.compile(r'\b(\d+)\s*gb\b', re.IGNORECASE)
_5G_TOKEN = re.compile(r'\b5g\b', re.IGNORECASE)
_4G_TOKEN = re.compile(r'\b4g\b', re.IGNORECASE)
# "650", "1.530,00", "R$ 1.530" at the very end of the line
_TRAILING_PRICE = re.compile(r'(?:^|\s)(?:r\$\s*)?(\d[\d.,]*)\s*$', re.IGNORECASE)


def detect_brand(text: str, sub_brands: bool = True) -> Brand:
    """
    Brand from the leading token of the text.

    With sub_brands=False only the brand names themselves are accepted
    (catalog rows); lines also resolve "redmi", "poco", "galaxy", "moto".

    Examples:
        'Xiaomi Redmi 14C 128GB' -> Brand.XIAOMI
        'Galaxy A15 128GB'       -> Brand.SAMSUNG
        'Apple iPhone 13 256GB'  -> Brand.UNKNOWN
        detect_brand('Galaxy A15', sub_brands=False) -> Brand.UNKNOWN
    """
    tokens = normalize_text(text).split()
    if not tokens:
        return Brand.UNKNOWN
    first = tokens[0]
    if first in BRAND_NAMES:
        return BRAND_NAMES[first]
    if not sub_brands:
        return Brand.UNKNOWN
    return SUB_BRANDS.get(first, Brand.UNKNOWN)


def extract_storage_ram(text: str) -> Tuple[int, int]:
    """
    Storage and RAM in GB from the "<int>GB" tokens of a product string.

    Storage is the first GB token. With two or more tokens, RAM is the smallest
    value unless it equals storage, in which case RAM is the largest.
    """
    values = [int(v) for v in _GB_TOKEN.findall(text)]
    if not values:
        return 0, 0
    storage = values[0]
    ram = 0
    if len(values) >= 2:
        smallest = min(values)
        ram = smallest if smallest != storage else max(values)
    return storage, ram


def extract_network(text: str) -> Optional[str]:
    """'5g' or '4g' when the token is present, None when the text says nothing."""
    if _5G_TOKEN.search(text):
        return NETWORK_5G
    if _4G_TOKEN.search(text):
        return NETWORK_4G
    return None


def extract_color(text: str) -> Optional[Color]:
    for token in normalize_text(text).split():
        color = COLOR_ALIASES.get(token)
        if color is not None:
            return color
    return None


def extract_model_segment(text: str) -> str:
    """Text between the brand token and the first GB token (whole text if none)."""
    match = _GB_TOKEN.search(text)
    left = text[:match.start()] if match else text
    tokens = normalize_text(left).split()
    if tokens and tokens[0] in BRAND_NAMES:
        tokens = tokens[1:]
    return ' '.join(tokens)


def extract_price_digits(line: str) -> str:
    """Digits of the trailing price token: '1.530,00' -> '153000', none -> '0'."""
    match = _TRAILING_PRICE.search(line)
    if not match:
        return '0'
    digits = re.sub(r'\D', '', match.group(1))
    return digits or '0'


def strip_trailing_price(line: str) -> str:
    return _TRAILING_PRICE.sub('', line).strip()


def split_lines(text: str) -> List[str]:
    """Non-empty, trimmed lines of a text block."""
    return [line.strip() for line in re.split(r'\r?\n', text) if line.strip()]


# ---------------------------------------------------------------------------
# Catalog parser
# ---------------------------------------------------------------------------

def parse_catalog_record(name: str, sku: str) -> Optional[CatalogEntry]:
    brand = detect_brand(name, sub_brands=False)
    if brand is Brand.UNKNOWN:
        return None
    storage, ram = extract_storage_ram(name)
    return CatalogEntry(
        sku=sku,
        name=name,
        brand=brand,
        model_base=normalize_model(brand, extract_model_segment(name)),
        storage_gb=storage,
        ram_gb=ram,
        color=extract_color(name),
        network=NETWORK_5G if _5G_TOKEN.search(name) else NETWORK_4G,
    )


def parse_catalog(text: str) -> List[CatalogEntry]:
    """
    Parse "name<TAB>sku" records into catalog entries, in file order.

    Rows without a tab, with an empty name/sku, or with an unrecognized
    brand are skipped. Duplicates are kept; the matcher tie-break picks
    the first one.
    """
    entries: List[CatalogEntry] = []
    skipped = 0
    for line in split_lines(text):
        name, sep, sku = line.partition('\t')
        name, sku = name.strip(), sku.strip()
        entry = parse_catalog_record(name, sku) if sep and name and sku else None
        if entry is None:
            skipped += 1
            logger.debug("catalog row skipped: %r", line)
            continue
        entries.append(entry)
    if skipped:
        logger.debug("catalog: %d entries parsed, %d rows skipped", len(entries), skipped)
    return entries


# ---------------------------------------------------------------------------
# Line parser
# ---------------------------------------------------------------------------

def parse_line(text: str) -> Optional[ParsedLine]:
    """
    Parse one standardized line ("Realme C75X 256GB 8GB Dourado 4G 725").

    Returns None when the line has no recognizable brand token.
    """
    raw = text.strip()
    body = strip_trailing_price(raw)
    brand = detect_brand(body)
    if brand is Brand.UNKNOWN:
        return None
    storage, ram = extract_storage_ram(body)
    return ParsedLine(
        raw=raw,
        brand=brand,
        model_base=normalize_model(brand, extract_model_segment(body)),
        storage_gb=storage,
        ram_gb=ram,
        color=extract_color(body),
        network=extract_network(body),
        price_digits=extract_price_digits(raw),
    )


def parse_lines(lines: Iterable[str]) -> List[ParsedLine]:
    parsed: List[ParsedLine] = []
    for line in lines:
        item = parse_line(line)
        if item is None:
            logger.debug("line dropped, no recognizable brand: %r", line)
            continue
        parsed.append(item)
    return parsed


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def _compact(model_base: str) -> str:
    return _SPACES.sub('', model_base)


def score_match(line: ParsedLine, entry: CatalogEntry) -> float:
    """Weighted compatibility score of one line against one catalog entry."""
    if line.brand is Brand.UNKNOWN or line.brand is not entry.brand:
        return BRAND_MISMATCH_SCORE

    score = 0.0
    if _compact(line.model_base) == _compact(entry.model_base):
        score += MODEL_WEIGHT
    if line.storage_gb and line.storage_gb == entry.storage_gb:
        score += STORAGE_WEIGHT
    if line.ram_gb and line.ram_gb == entry.ram_gb:
        score += RAM_WEIGHT

    wanted = line.network or DEFAULT_NETWORK
    if wanted == entry.network:
        score += NETWORK_MATCH_WEIGHT
    elif wanted == NETWORK_4G and entry.network == NETWORK_5G:
        score += NETWORK_5G_PENALTY

    if line.color is None or entry.color is None or line.color is entry.color:
        score += COLOR_WEIGHT
    return score


def compute_score_breakdown(line: ParsedLine, entry: CatalogEntry) -> Dict[str, object]:
    """
    Per-attribute view of score_match for one pair.

    Purely diagnostic; does NOT change any match decision.
    """
    wanted = line.network or DEFAULT_NETWORK
    if wanted == entry.network:
        network = 'match'
    elif wanted == NETWORK_4G and entry.network == NETWORK_5G:
        network = 'penalty'
    else:
        network = 'neutral'
    return {
        'brand_match': line.brand is entry.brand and line.brand is not Brand.UNKNOWN,
        'model_match': _compact(line.model_base) == _compact(entry.model_base),
        'storage_match': bool(line.storage_gb) and line.storage_gb == entry.storage_gb,
        'ram_match': bool(line.ram_gb) and line.ram_gb == entry.ram_gb,
        'network': network,
        'color_match': line.color is None or entry.color is None or line.color is entry.color,
    }


def best_candidate(line: ParsedLine, catalog: Sequence[CatalogEntry]) -> Optional[Tuple[CatalogEntry, float]]:
    """Highest-scoring same-brand entry, regardless of threshold. First one wins ties."""
    best: Optional[Tuple[CatalogEntry, float]] = None
    for entry in catalog:
        score = score_match(line, entry)
        if score <= BRAND_MISMATCH_SCORE:
            continue
        if best is None or score > best[1]:
            best = (entry, score)
    return best


def best_match(
    line: ParsedLine,
    catalog: Sequence[CatalogEntry],
    threshold: float = MATCH_THRESHOLD,
) -> Optional[Tuple[CatalogEntry, float]]:
    """Best candidate if it reaches the confidence threshold, else None."""
    best = best_candidate(line, catalog)
    if best is None or best[1] < threshold:
        return None
    return best


# ---------------------------------------------------------------------------
# Result assembly
# ---------------------------------------------------------------------------

def brand_rank(brand: Brand) -> int:
    """Position in BRAND_PRIORITY; anything else sorts last."""
    try:
        return BRAND_PRIORITY.index(brand)
    except ValueError:
        return len(BRAND_PRIORITY)


def collation_key(name: str) -> Tuple[str, str, str]:
    """
    Sort key approximating Brazilian Portuguese collation.

    Compares base letters first, then accents (unaccented first), then
    case (lowercase first), as locale-aware comparison does for pt-BR.
    Punctuation and symbols compare by code point, so their order is only
    approximate (e.g. "_" sorts after digits here, before them in ICU).
    """
    folded = name.casefold()
    return strip_accents(folded), folded, name.swapcase()


def assemble(
    lines: Sequence[ParsedLine],
    catalog: Sequence[CatalogEntry],
    threshold: float = MATCH_THRESHOLD,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> MatchReport:
    """
    Match every parsed line and build the three result views.

    Returns:
        MatchReport with:
            with_code: matched results, brand priority then name collation
            no_code:   unmatched results in input order (name = original line)
            details:   with_code followed by no_code
    """
    matched: List[Tuple[Brand, MatchResult]] = []
    unmatched: List[MatchResult] = []
    total = len(lines)

    for done, line in enumerate(lines, start=1):
        best = best_candidate(line, catalog)
        if best is not None and best[1] >= threshold:
            entry, score = best
            matched.append((entry.brand, MatchResult(entry.sku, entry.name, line.price_digits, score)))
        else:
            score = best[1] if best is not None else 0.0
            unmatched.append(MatchResult(NO_CODE_SKU, line.raw, line.price_digits, score))
            logger.debug("no confident match (best %.1f): %r", score, line.raw)

        if progress_callback and (done % PROGRESS_EVERY == 0 or done == total):
            progress_callback(done, total)

    matched.sort(key=lambda pair: (brand_rank(pair[0]), collation_key(pair[1].name)))
    with_code = tuple(result for _, result in matched)
    no_code = tuple(unmatched)
    return MatchReport(details=with_code + no_code, with_code=with_code, no_code=no_code)


# ---------------------------------------------------------------------------
# Batch entry point
# ---------------------------------------------------------------------------

TextInput = Union[str, bytes, bytearray]


def coerce_text(value: object, label: str = 'input') -> str:
    """Return text as str, decoding UTF-8 bytes. Raises InputEncodingError otherwise."""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode('utf-8-sig')
        except UnicodeDecodeError as exc:
            raise InputEncodingError(f"{label} is not valid UTF-8: {exc}") from exc
    raise InputEncodingError(f"{label} must be text, got {type(value).__name__}")


def _input_lines(standardized_lines: Union[TextInput, Iterable[TextInput]]) -> List[str]:
    if isinstance(standardized_lines, (str, bytes, bytearray)):
        return split_lines(coerce_text(standardized_lines, 'standardized lines'))
    try:
        items = iter(standardized_lines)
    except TypeError as exc:
        raise InputEncodingError(
            f"standardized lines must be text or an iterable of text, got {type(standardized_lines).__name__}"
        ) from exc
    lines = []
    for item in items:
        text = coerce_text(item, 'standardized line').strip()
        if text:
            lines.append(text)
    return lines


def match_lists(
    standardized_lines: Union[TextInput, Iterable[TextInput]],
    catalog_text: TextInput,
    threshold: float = MATCH_THRESHOLD,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    max_catalog_entries: int = MAX_CATALOG_ENTRIES,
    max_input_lines: int = MAX_INPUT_LINES,
) -> MatchReport:
    """
    Match standardized lines against a "name<TAB>sku" catalog.

    Args:
        standardized_lines: newline-separated text, or an iterable of lines
        catalog_text: newline-separated "name<TAB>sku" records
        threshold: minimum best-candidate score to accept a SKU
        progress_callback: optional callable(current, total)
        max_catalog_entries / max_input_lines: safety limits on batch size

    Raises:
        InputEncodingError: an input is neither text nor UTF-8 bytes
        InputLimitError: an input has more records than its limit

    Malformed catalog rows, unbranded lines and low-confidence matches are
    not errors: they are skipped, dropped or reported under no_code.

    Input lines are trimmed, so a no_code name is the caller's line without
    surrounding whitespace; inner text is kept verbatim.
    """
    catalog_lines = split_lines(coerce_text(catalog_text, 'catalog'))
    if len(catalog_lines) > max_catalog_entries:
        raise InputLimitError(
            f"catalog has {len(catalog_lines)} records, limit is {max_catalog_entries}"
        )
    lines = _input_lines(standardized_lines)
    if len(lines) > max_input_lines:
        raise InputLimitError(f"{len(lines)} input lines, limit is {max_input_lines}")

    catalog = parse_catalog('\n'.join(catalog_lines))
    parsed = parse_lines(lines)
    report = assemble(parsed, catalog, threshold=threshold, progress_callback=progress_callback)

    logger.info(
        "matched %d of %d lines (%d no code, %d dropped) against %d catalog entries",
        len(report.with_code), len(lines), len(report.no_code),
        len(lines) - len(parsed), len(catalog),
    )
    return report


# ---------------------------------------------------------------------------
# Single-line diagnostics
# ---------------------------------------------------------------------------

def explain_match(
    line_text: str,
    catalog: Union[str, Sequence[CatalogEntry]],
    limit: int = 5,
    threshold: float = MATCH_THRESHOLD,
) -> dict:
    """
    Show how one line scores against the catalog. Returns parsed attributes,
    the top same-brand candidates with a per-attribute breakdown, and the
    best match. Does not change any decision made by assemble().
    """
    entries = parse_catalog(catalog) if isinstance(catalog, str) else list(catalog)
    line = parse_line(line_text)
    if line is None:
        return {
            'line': line_text,
            'parsed': None,
            'error': 'brand_unknown: no recognizable brand token',
            'candidates': [],
            'best_match': None,
            'matched': False,
        }

    scored = [
        (score_match(line, entry), position, entry)
        for position, entry in enumerate(entries)
        if entry.brand is line.brand
    ]
    scored.sort(key=lambda item: (-item[0], item[1]))

    candidates = []
    for score, _, entry in scored[:limit]:
        candidate = {'sku': entry.sku, 'name': entry.name, 'model_base': entry.model_base, 'score': score}
        candidate.update(compute_score_breakdown(line, entry))
        candidates.append(candidate)

    best = candidates[0] if candidates else None
    return {
        'line': line_text,
        'parsed': asdict(line),
        'candidates': candidates,
        'best_match': best,
        'matched': best is not None and best['score'] >= threshold,
    }
