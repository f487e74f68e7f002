"""Built-in metadata for the tracked instruments, suppliers, indicators,
news feeds and weather locations.

These are the defaults; every table can be replaced from the YAML config.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class InstrumentSpec:
    id: str
    name: str
    symbol: str
    ticker: str
    price_impact: str
    regional_impact: str


@dataclass(frozen=True)
class SupplierSpec:
    ticker: str
    company: str
    focus_area: str
    regional_presence: str
    key_products: str
    pricing_power_assessment: str
    regional_relevance_score: int


@dataclass(frozen=True)
class IndicatorSpec:
    id: str
    symbol: str
    name: str
    unit: str
    description: str
    source: str


@dataclass(frozen=True)
class LocationSpec:
    name: str
    latitude: float
    longitude: float


DEFAULT_INSTRUMENTS: Tuple[InstrumentSpec, ...] = (
    InstrumentSpec(
        "ng", "Natural Gas", "NG", "NG=F",
        "Direct impact on heating, manufacturing, and transportation costs",
        "Affects energy costs for construction equipment and material production",
    ),
    InstrumentSpec(
        "cl", "Crude Oil", "CL", "CL=F",
        "Major driver of fuel and transportation costs",
        "Impacts delivery costs and asphalt pricing for SoCal projects",
    ),
    InstrumentSpec(
        "gc", "Gold", "GC", "GC=F",
        "Economic uncertainty indicator and inflation hedge",
        "Indicator of economic conditions affecting construction financing",
    ),
    InstrumentSpec(
        "si", "Silver", "SI", "SI=F",
        "Industrial metal with electrical and solar applications",
        "Affects electrical component and solar panel costs in SoCal construction",
    ),
    InstrumentSpec(
        "hg", "Copper", "HG", "HG=F",
        "Critical for electrical wiring and plumbing",
        "Direct impact on electrical and plumbing costs for SoCal builders",
    ),
    InstrumentSpec(
        "lbs", "Lumber", "LBS", "LBS=F",
        "Essential for framing and construction",
        "Major cost driver for residential and commercial framing in SoCal",
    ),
    InstrumentSpec(
        "steel", "Steel", "STEEL", "SLX",
        "Structural material for commercial construction",
        "Critical for high-rise and commercial projects in LA/SD metro areas",
    ),
    InstrumentSpec(
        "dxy", "USD Index", "DXY", "DX-Y.NYB",
        "Affects import costs and international material pricing",
        "Impacts cost of imported materials through Port of LA/Long Beach",
    ),
)

DEFAULT_SUPPLIERS: Tuple[SupplierSpec, ...] = (
    SupplierSpec(
        "HD", "Home Depot", "Home Improvement Retail",
        "100+ stores across Southern California",
        "Building materials, tools, lumber, plumbing, electrical",
        "Strong pricing power due to market leadership and scale", 95,
    ),
    SupplierSpec(
        "LOW", "Lowe's", "Home Improvement Retail",
        "80+ stores in SoCal region",
        "Building materials, appliances, tools, lumber",
        "Good pricing power, competing closely with HD", 90,
    ),
    SupplierSpec(
        "BLDR", "Builders FirstSource", "Building Materials Distribution",
        "Multiple distribution centers in LA/SD",
        "Lumber, trusses, millwork, windows, doors",
        "Strong in professional builder segment", 85,
    ),
    SupplierSpec(
        "FAST", "Fastenal", "Industrial Distribution",
        "50+ branches in Southern California",
        "Fasteners, tools, safety supplies, OEM components",
        "Moderate pricing power in fragmented market", 75,
    ),
    SupplierSpec(
        "MAS", "Masco", "Home Improvement Products",
        "Products widely available through retailers",
        "Faucets, cabinets, paints (Behr), bath products",
        "Brand-driven pricing power (Delta, Behr)", 80,
    ),
    SupplierSpec(
        "CARR", "Carrier Global", "HVAC & Building Systems",
        "Strong dealer network in hot SoCal climate",
        "HVAC systems, refrigeration, fire & security",
        "Premium brand with strong pricing power", 88,
    ),
    SupplierSpec(
        "JCI", "Johnson Controls", "Building Technology",
        "Major presence in commercial construction",
        "HVAC, fire safety, security systems, building automation",
        "Strong in integrated building solutions", 82,
    ),
    SupplierSpec(
        "OC", "Owens Corning", "Building Materials",
        "Products distributed throughout SoCal",
        "Roofing, insulation, composites",
        "Strong pricing in roofing segment", 85,
    ),
    SupplierSpec(
        "SHW", "Sherwin-Williams", "Paints & Coatings",
        "200+ stores in Southern California",
        "Paints, stains, coatings, applicators",
        "Market leader with premium pricing", 92,
    ),
    SupplierSpec(
        "VMC", "Vulcan Materials", "Construction Aggregates",
        "Quarries and plants throughout SoCal",
        "Crushed stone, sand, gravel, asphalt, concrete",
        "Regional monopolies provide strong pricing", 95,
    ),
)

DEFAULT_INDICATORS: Tuple[IndicatorSpec, ...] = (
    IndicatorSpec(
        "tnx", "^TNX", "10-Year Treasury Yield", "%",
        "U.S. 10-year Treasury note yield, key benchmark for mortgage rates", "U.S. Treasury",
    ),
    IndicatorSpec(
        "fvx", "^FVX", "5-Year Treasury Yield", "%",
        "U.S. 5-year Treasury note yield, medium-term rate indicator", "U.S. Treasury",
    ),
    IndicatorSpec(
        "irx", "^IRX", "13-Week T-Bill Rate", "%",
        "Short-term Treasury bill rate, reflects Fed policy", "U.S. Treasury",
    ),
    IndicatorSpec(
        "vix", "^VIX", "Market Volatility Index", "",
        "CBOE VIX measures market uncertainty and construction financing risk", "CBOE",
    ),
    IndicatorSpec(
        "gspc", "^GSPC", "S&P 500 Index", "",
        "Broad market index reflecting overall economic health", "S&P Dow Jones",
    ),
    IndicatorSpec(
        "xhb", "XHB", "Homebuilders Index", "$",
        "SPDR S&P Homebuilders ETF tracks residential construction sector", "SPDR",
    ),
    IndicatorSpec(
        "itb", "ITB", "Home Construction ETF", "$",
        "iShares U.S. Home Construction ETF tracks building industry", "iShares",
    ),
    IndicatorSpec(
        "xli", "XLI", "Industrial Sector", "$",
        "Industrial Select Sector SPDR tracks manufacturing and construction equipment", "SPDR",
    ),
)

DEFAULT_NEWS_TICKERS: Tuple[str, ...] = (
    "HD", "LOW", "BLDR", "VMC", "MLM", "OC", "MAS", "LEN", "DHI", "TOL", "PHM", "XHB",
)

DEFAULT_TOPIC_FEEDS: Tuple[str, ...] = ()

DEFAULT_NEWS_KEYWORDS: Tuple[str, ...] = (
    "construction", "building", "builder", "homebuilder", "home depot", "lowe's",
    "housing", "house", "home", "residential", "commercial building",
    "lumber", "wood", "timber", "steel", "copper", "cement", "concrete",
    "roofing", "insulation", "drywall", "plywood", "materials",
    "infrastructure", "renovation", "remodel", "contractor",
    "real estate", "property", "development", "developer",
    "permit", "starts", "mortgage", "interest rate",
    "lennar", "pulte", "toll brothers", "horton", "vulcan", "martin marietta",
    "owens corning", "masco", "builders firstsource",
    "california", "socal", "southern california", "los angeles", "san diego",
)

# Subscription-only publishers; their links are dead ends for the reader
DEFAULT_BLOCKED_SOURCES: Tuple[str, ...] = (
    "wall street journal", "wsj", "bloomberg", "barron's", "barrons",
    "financial times", "ft.com", "economist", "investor's business daily",
    "marketwatch premium", "morningstar premium", "seeking alpha premium",
)

DEFAULT_LOCATIONS: Tuple[LocationSpec, ...] = (
    LocationSpec("San Diego", 32.7157, -117.1611),
    LocationSpec("Ventura", 34.2746, -119.2290),
    LocationSpec("El Cajon", 32.7948, -116.9625),
    LocationSpec("Chula Vista", 32.6401, -117.0842),
    LocationSpec("Santee", 32.8384, -116.9739),
)

DEFAULT_RELAYS: Tuple[str, ...] = (
    "https://api.allorigins.win/raw?url={url}",
    "https://corsproxy.io/?url={url}",
)
