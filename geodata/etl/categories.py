"""Category tables used to query the providers and to classify their results."""

from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from geodata.models import LocationType

# Spanish search terms sent to DENUE during full scans, one request per term.
DENUE_SEARCH_KEYWORDS: Dict[LocationType, List[str]] = {
    LocationType.FOOD: ["restaurantes", "cafeterías", "taquerías", "comida"],
    LocationType.SHOP: ["artesanías", "ropa", "joyería", "tiendas"],
    LocationType.CULTURAL: ["museos", "galerías", "teatros"],
    LocationType.STADIUM: ["estadios", "arena"],
    LocationType.ENTERTAINMENT: ["bares", "discotecas", "cines", "entretenimiento"],
    LocationType.SOUVENIRS: ["dulces", "regalos", "recuerdos"],
    LocationType.OTHERS: ["turismo"],
}

DENUE_SCAN_CATEGORIES: Tuple[LocationType, ...] = (
    LocationType.FOOD,
    LocationType.SHOP,
    LocationType.CULTURAL,
    LocationType.STADIUM,
    LocationType.ENTERTAINMENT,
    LocationType.SOUVENIRS,
)

# Broader terms used by the map viewport lookup.
DENUE_LOOKUP_KEYWORDS: Dict[LocationType, List[str]] = {
    LocationType.FOOD: ["restaurantes", "cafeterías", "neverías", "taquerías", "pizzerías", "antojitos"],
    LocationType.SHOP: ["artesanías", "ropa", "calzado", "joyería"],
    LocationType.CULTURAL: ["museos", "galerías de arte", "sitios históricos", "teatros"],
    LocationType.STADIUM: ["estadios"],
    LocationType.ENTERTAINMENT: ["bares", "centros nocturnos", "discotecas", "cines", "billares", "boliches"],
    LocationType.SOUVENIRS: ["dulces", "regalos", "artículos religiosos"],
    LocationType.OTHERS: [],
}

GOOGLE_PLACE_TYPES: Dict[LocationType, FrozenSet[str]] = {
    LocationType.FOOD: frozenset({
        "restaurant", "cafe", "mexican_restaurant", "bakery", "meal_takeaway", "meal_delivery",
        "seafood_restaurant", "japanese_restaurant", "mediterranean_restaurant", "brunch_restaurant",
        "breakfast_restaurant", "steak_house", "brazilian_restaurant", "italian_restaurant",
        "chinese_restaurant", "american_restaurant", "fast_food_restaurant", "pizza_restaurant",
        "sandwich_shop", "ice_cream_shop", "coffee_shop", "food_court", "bar_and_grill",
    }),
    LocationType.SHOP: frozenset({
        "shopping_mall", "department_store", "clothing_store", "jewelry_store", "book_store",
        "electronics_store", "supermarket", "convenience_store",
    }),
    LocationType.CULTURAL: frozenset({
        "tourist_attraction", "museum", "art_gallery", "park", "historical_landmark", "church",
        "library", "concert_hall", "cultural_center", "performing_arts_theater", "monument",
        "national_park", "state_park", "convention_center", "auditorium", "city_hall",
        "courthouse", "embassy", "plaza",
    }),
    LocationType.STADIUM: frozenset({
        "stadium", "sports_complex", "sports_club", "gym", "fitness_center", "swimming_pool",
        "tennis_court", "soccer_field",
    }),
    LocationType.ENTERTAINMENT: frozenset({
        "bar", "night_club", "amusement_park", "zoo", "aquarium", "casino", "movie_theater",
        "bowling_alley", "amusement_center", "arcade", "event_venue", "wedding_venue",
    }),
    LocationType.SOUVENIRS: frozenset({"gift_shop"}),
    LocationType.OTHERS: frozenset({
        "hotel", "lodging", "resort_hotel", "extended_stay_hotel", "bed_and_breakfast",
        "guest_house", "hostel", "spa", "beauty_salon", "hair_salon", "subway_station",
        "train_station", "bus_station", "airport", "transit_station", "light_rail_station",
    }),
}

RELEVANT_PLACE_TYPES: FrozenSet[str] = frozenset().union(*GOOGLE_PLACE_TYPES.values())

IGNORED_PLACE_TYPES: FrozenSet[str] = frozenset({
    "gas_station", "atm", "car_repair", "car_wash", "parking",
    "real_estate_agency", "lawyer", "accounting", "insurance_agency",
})

STADIUM_NAME_KEYWORDS: Tuple[str, ...] = (
    "estadio", "stadium", "arena", "foro sol", "palacio de los deportes", "autódromo",
)


class CategoryMatcher:
    """Ordered table of ``(type, substrings)`` rules; the first rule that matches wins."""

    def __init__(
        self,
        rules: Iterable[Tuple[LocationType, Sequence[str]]],
        default: LocationType = LocationType.OTHERS,
    ) -> None:
        self._rules = [(location_type, tuple(k.lower() for k in keywords)) for location_type, keywords in rules]
        self.default = default

    def match(self, text: Optional[str]) -> LocationType:
        lowered = (text or "").lower()
        for location_type, keywords in self._rules:
            if any(keyword in lowered for keyword in keywords):
                return location_type
        return self.default


DENUE_CATEGORY_MATCHER = CategoryMatcher([
    (LocationType.FOOD, ("restaurante", "cafetería", "nevería", "taquería", "comida", "alimento")),
    (LocationType.ENTERTAINMENT, ("bar", "discoteca", "nocturno", "cine")),
    (LocationType.SHOP, ("ropa", "calzado", "joyería", "artesanía")),
    (LocationType.SOUVENIRS, ("dulce", "regalo", "souvenir")),
    (LocationType.CULTURAL, ("museo", "galería", "teatro", "histórico")),
    (LocationType.STADIUM, ("estadio", "arena")),
])


def keyword_categories(keywords: Dict[LocationType, List[str]], categories: Iterable[LocationType]) -> Dict[str, LocationType]:
    """Flatten ``keywords`` into ``{keyword: category}`` in category order.

    A keyword listed under two categories keeps the first one.
    """
    flattened: Dict[str, LocationType] = {}
    for category in categories:
        for keyword in keywords.get(category, []):
            flattened.setdefault(keyword, category)
    return flattened
