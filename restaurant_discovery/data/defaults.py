"""
Deployment defaults for the Lagos amala-spot discovery deployment.

Everything here can be overridden through DiscoveryConfig or by passing
custom scraping targets to ScrapingAdapter.
"""
from typing import Dict, List

from pydantic import BaseModel, Field

# Lagos, Nigeria
DEFAULT_REGION_CENTROID = (6.5244, 3.3792)
DEFAULT_SEARCH_RADIUS_M = 50000
DEFAULT_CUISINE_TAG = "Nigerian"
DEFAULT_SERVICE_TYPE = "both"

DEFAULT_REGION_KEYWORDS: List[str] = ["lagos"]

DEFAULT_DOMAIN_KEYWORDS: List[str] = [
    "amala",
    "ewedu",
    "gbegiri",
    "yoruba",
    "nigerian",
    "bukka",
    "buka",
]

DEFAULT_QUERIES: Dict[str, List[str]] = {
    "api": [
        "amala restaurant Lagos Nigeria",
        "amala spots Ikeja Lagos",
        "amala restaurants Surulere Lagos",
        "best amala Yaba Lagos",
        "amala bukka Victoria Island Lagos",
        "traditional amala Lekki Lagos",
        "ewedu gbegiri restaurants Lagos Island",
        "Yoruba food Gbagada Lagos",
    ],
    "scraping": [
        "best amala spots Lagos",
        "where to eat amala in Lagos",
        "Nigerian restaurants Lagos",
    ],
    "social": [
        "#amalalagos",
        "#nigerianfood",
        "amala restaurant Lagos -is:retweet",
    ],
}

DEFAULT_HOURS = {
    "monday": {"open": "08:00", "close": "20:00", "is_open": False},
    "tuesday": {"open": "08:00", "close": "20:00", "is_open": False},
    "wednesday": {"open": "08:00", "close": "20:00", "is_open": False},
    "thursday": {"open": "08:00", "close": "20:00", "is_open": False},
    "friday": {"open": "08:00", "close": "20:00", "is_open": False},
    "saturday": {"open": "09:00", "close": "19:00", "is_open": False},
    "sunday": {"open": "10:00", "close": "18:00", "is_open": False},
}


class SelectorRules(BaseModel):
    """Comma-separated CSS selectors per field, tried in order"""
    name: str = ""
    address: str = ""
    phone: str = ""
    website: str = ""
    rating: str = ""
    price: str = ""
    reviews: str = ""


class ScrapingTarget(BaseModel):
    url: str
    type: str = "blog"
    selectors: SelectorRules = Field(default_factory=SelectorRules)


DEFAULT_SCRAPING_TARGETS: List[ScrapingTarget] = [
    ScrapingTarget(
        url="https://www.pulse.ng/lifestyle/food-travel-arts",
        type="blog",
        selectors=SelectorRules(
            name=".restaurant-name, .business-name, h3, h4",
            address=".address, .location, .place",
            phone=".phone, .contact",
            price=".price, .cost, .pricing, .budget",
            reviews=".review, .comment, .testimonial, .user-review",
        ),
    ),
    ScrapingTarget(
        url="https://guardian.ng/life/food-drink-travel",
        type="blog",
        selectors=SelectorRules(
            name=".entry-title, .post-title",
            address=".location, .address",
            price=".price, .cost, .pricing",
            reviews=".comment, .reader-comment, .user-feedback",
        ),
    ),
    ScrapingTarget(
        url="https://www.tripadvisor.com/Restaurants",
        type="review-site",
        selectors=SelectorRules(
            name=".restaurant-name, h3, [data-test='restaurant-name']",
            address=".address, [data-test='address']",
            rating=".rating, [data-test='rating']",
            price=".price, .cost-range, [data-test='price']",
            reviews=".review-container, .review-text, .review-body",
        ),
    ),
]
