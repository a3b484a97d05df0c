"""Compiled-in seed dataset and the default application state.

Seed records are identified by stable ids. They are never edited or
deleted at the source; the engine can only hide them (see ``hidden_ids``).
Callers always receive deep copies so the catalog itself stays immutable.
"""

import copy
from typing import Any

from .models import Record, SiteData
from .schemas import EntityType

_IMAGE = "https://images.unsplash.com/{}?auto=format&fit=crop&q=80&w=800"

SEED_ARTICLES: tuple[Record, ...] = (
    {
        "id": "art-1",
        "slug": "why-need-digital-system",
        "title": "Why your business needs a system, not just a website",
        "content": "Full article content...",
        "excerpt": "A brochure site no longer wins customers. Turn your business into a sales machine.",
        "image": _IMAGE.format("photo-1460925895917-afdab827c52f"),
        "category": "Business Strategy",
        "tags": ["Digital Transformation", "Sales"],
        "keywords": ["digital system", "sales"],
        "author": "Studio",
        "date": "2025-01-06T09:00:00+00:00",
        "status": "published",
        "readTime": "5 min",
        "seo": {"title": "", "description": "", "focusKeyword": ""},
    },
    {
        "id": "art-2",
        "slug": "ai-in-local-markets",
        "title": "AI in local markets: opportunities and challenges for 2025",
        "content": "Full article content...",
        "excerpt": "How small companies can use AI to cut costs and multiply output.",
        "image": _IMAGE.format("photo-1677442136019-21780ecad995"),
        "category": "AI Trends",
        "tags": ["AI"],
        "keywords": ["artificial intelligence", "productivity"],
        "author": "Studio",
        "date": "2025-01-13T09:00:00+00:00",
        "status": "published",
        "readTime": "7 min",
        "seo": {"title": "", "description": "", "focusKeyword": ""},
    },
    {
        "id": "art-3",
        "slug": "e-commerce-automation",
        "title": "E-commerce automation: run your store while you sleep",
        "content": "Full article content...",
        "excerpt": "Connect inventory, shipping and customer support in one integrated system.",
        "image": _IMAGE.format("photo-1556742049-0cfed4f7a07d"),
        "category": "E-Commerce",
        "tags": ["Automation", "E-com"],
        "keywords": ["e-commerce", "automation"],
        "author": "Studio",
        "date": "2025-01-20T09:00:00+00:00",
        "status": "published",
        "readTime": "6 min",
        "seo": {"title": "", "description": "", "focusKeyword": ""},
    },
)

SEED_SERVICES: tuple[Record, ...] = (
    {
        "id": "s1",
        "code": "NR-PRO-01",
        "title": "Project management from zero",
        "description": "From the paper plan to a complete digital business.",
        "icon": "Rocket",
        "price": 0,
        "priceLabel": "Per project",
        "features": ["Strategic planning", "Team management", "Budget tracking", "Risk review"],
    },
    {
        "id": "s2",
        "code": "NR-WEB-02",
        "title": "Websites and platforms",
        "description": "Storefronts and corporate sites built around conversion.",
        "icon": "Layout",
        "price": 50000,
        "priceLabel": "From 50,000 DZD",
        "features": ["UI/UX design", "Fast performance", "SEO ready", "Payments and booking"],
    },
    {
        "id": "s3",
        "code": "NR-MKT-03",
        "title": "Digital marketing",
        "description": "Data-driven growth campaigns aimed at the right audience.",
        "icon": "BarChart4",
        "price": 30000,
        "priceLabel": "From 30,000 DZD/month",
        "features": ["Ads management", "Audience analysis", "Sales copy", "Funnels"],
    },
    {
        "id": "s4",
        "code": "NR-AUTO-04",
        "title": "Automation engineering",
        "description": "Manual operations turned into systems that run themselves.",
        "icon": "Zap",
        "price": 0,
        "priceLabel": "On demand",
        "features": ["Support automation", "API integrations", "Smart alerts", "Automatic reports"],
    },
)

SEED_PROJECTS: tuple[Record, ...] = (
    {
        "id": "p1",
        "title": "Wholesale distribution platform",
        "category": "SaaS Enterprise",
        "image": _IMAGE.format("photo-1460925895917-afdab827c52f"),
        "status": "completed",
        "featured": True,
        "tags": ["React", "PostgreSQL", "Google Cloud"],
        "fullDescription": "Supply chain and sales system linking warehouses to points of sale.",
        "client": "Oasis Import Group",
        "date": "2024-12",
        "technologies": ["React", "PostgreSQL", "Google Cloud", "AI Forecasting"],
        "gallery": [],
    },
    {
        "id": "p2",
        "title": "Fashion storefront",
        "category": "E-Commerce",
        "image": _IMAGE.format("photo-1441986300917-64674bd600d8"),
        "status": "completed",
        "featured": True,
        "tags": ["Next.js", "Stripe", "Shopify"],
        "fullDescription": "Storefront with multi-method payments and live shipment tracking.",
        "client": "Elegance Boutique",
        "date": "2024-11",
        "technologies": ["Next.js", "Stripe", "Shopify API", "Tailwind CSS"],
        "gallery": [],
    },
    {
        "id": "p3",
        "title": "Smart booking app",
        "category": "Mobile App",
        "image": _IMAGE.format("photo-1512941937669-90a1b58e7e9c"),
        "status": "completed",
        "featured": False,
        "tags": ["React Native", "Firebase", "Node.js"],
        "fullDescription": "Appointment booking with reminders and staff calendars.",
        "client": "City Clinic",
        "date": "2024-10",
        "technologies": ["React Native", "Firebase", "Node.js"],
        "gallery": [],
    },
)

SEED_INTEGRATIONS: tuple[Record, ...] = tuple(
    {"id": pid, "name": name, "icon": icon, "provider": pid, "status": "disconnected"}
    for pid, name, icon in (
        ("google_business", "Google Business", "Search"),
        ("linkedin", "LinkedIn Professional", "Linkedin"),
        ("twitter", "Twitter / X", "Twitter"),
        ("facebook", "Facebook Page", "Facebook"),
        ("instagram", "Instagram Business", "Instagram"),
    )
)

SEED_CATALOG: dict[EntityType, tuple[Record, ...]] = {
    EntityType.ARTICLE: SEED_ARTICLES,
    EntityType.SERVICE: SEED_SERVICES,
    EntityType.PROJECT: SEED_PROJECTS,
    EntityType.INTEGRATION: SEED_INTEGRATIONS,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "brand": {
        "siteName": "Studio",
        "logo": "/logo.png",
        "primaryColor": "#4f46e5",
        "darkMode": True,
        "slogan": "Building Digital Empires",
        "fontFamily": "Inter",
        "borderRadius": "1.5rem",
        "glassOpacity": "0.1",
        "templateId": "premium-glass",
    },
    "contact_info": {
        "phone": "+213 555 000 000",
        "whatsapp": "https://wa.me/213555000000",
        "email": "contact@example.com",
        "address": "Batna, Algeria",
        "socials": {"linkedin": "", "facebook": "", "instagram": "", "twitter": ""},
    },
    "ai_config": {
        "field": "Digital project management and automation",
        "mission": "Turn traditional companies into smart digital businesses.",
        "tone": "professional",
        "painPoints": "Scattered data, weak sales, manual work.",
        "sellingPoints": "Licensed contractor, five years of experience, 24/7 support.",
        "ctaAction": "Book a free diagnostic session on WhatsApp.",
        "preferredProvider": "gemini",
    },
    "features": {
        "contentManager": True,
        "aiBrain": True,
        "crm": True,
        "financials": True,
        "marketing": True,
    },
    "faqs": [
        {
            "q": "Why work with an independent studio instead of an agency?",
            "a": "You get one accountable technical partner who follows the project end to end.",
        },
    ],
    "testimonials": [
        {
            "name": "Sofiane B.",
            "role": "CEO, Dz Food",
            "text": "A solutions engineer who understands the local market.",
        },
    ],
    "process": [
        {"step": "01", "title": "Diagnosis", "desc": "Find what is blocking growth."},
        {"step": "02", "title": "Architecture", "desc": "Draw the technical and strategic plan."},
        {"step": "03", "title": "Launch", "desc": "Ship and monitor in production."},
        {"step": "04", "title": "Scale", "desc": "Expand and keep growing."},
    ],
    "stats": [
        {"icon": "ShieldCheck", "label": "Licensed", "val": "100%"},
        {"icon": "Users", "label": "Partners", "val": "85+"},
        {"icon": "Briefcase", "label": "Projects delivered", "val": "140+"},
        {"icon": "Zap", "label": "Support", "val": "24/7"},
    ],
    "profile": {
        "name": "Studio",
        "primaryTitle": "Digital growth engineer",
        "bio": "We engineer automated sales systems and run projects from zero.",
    },
    "autopilot": {
        "enabled": False,
        "frequency": "weekly",
        "platforms": ["linkedin", "twitter"],
        "strategyFocus": "growth",
    },
}


def seed_records(entity: EntityType) -> list[Record]:
    """Return a deep copy of the seed catalog for *entity* (empty if unseeded)."""
    return copy.deepcopy(list(SEED_CATALOG.get(entity, ())))


def seed_ids(entity: EntityType) -> frozenset[str]:
    """Return the stable ids of the seed catalog for *entity*."""
    return frozenset(r["id"] for r in SEED_CATALOG.get(entity, ()))


def is_seed_id(entity: EntityType, record_id: str) -> bool:
    return record_id in seed_ids(entity)


def default_site_data() -> SiteData:
    """Build the compiled default state: seed collections plus default settings."""
    return SiteData(
        articles=seed_records(EntityType.ARTICLE),
        services=seed_records(EntityType.SERVICE),
        projects=seed_records(EntityType.PROJECT),
        integrations=seed_records(EntityType.INTEGRATION),
        **copy.deepcopy(DEFAULT_SETTINGS),
    )
