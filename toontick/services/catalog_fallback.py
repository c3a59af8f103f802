"""Static offline catalog served when the live catalog API is unavailable.

Entries use the same media shape the GraphQL API returns so they go through
the same mapping as live results.
"""

FALLBACK_MEDIA = [
    {
        "id": 105398,
        "title": {"english": "Solo Leveling", "romaji": "Na Honjaman Level Up"},
        "coverImage": {"large": "https://s4.anilist.co/file/anilistcdn/media/manga/cover/medium/bx105398-b673Vt5ZSuz3.jpg"},
        "averageScore": 85,
        "popularity": 253168,
        "chapters": 201,
        "status": "FINISHED",
        "startDate": {"year": 2018},
        "genres": ["Action", "Adventure", "Fantasy"],
    },
    {
        "id": 119257,
        "title": {"english": "Omniscient Reader", "romaji": "Jeonjijeok Dokja Sijeom"},
        "coverImage": {"large": "https://s4.anilist.co/file/anilistcdn/media/manga/cover/medium/bx119257-Pi21aq3ey9GG.jpg"},
        "averageScore": 86,
        "popularity": 107243,
        "chapters": None,
        "status": "RELEASING",
        "startDate": {"year": 2020},
        "genres": ["Action", "Adventure", "Drama", "Fantasy"],
    },
    {
        "id": 86964,
        "title": {"english": "Bastard", "romaji": "Hurejasik"},
        "coverImage": {"large": "https://s4.anilist.co/file/anilistcdn/media/manga/cover/medium/nx86964-r7S3IbJNr4SD.jpg"},
        "averageScore": 83,
        "popularity": 69264,
        "chapters": 94,
        "status": "FINISHED",
        "startDate": {"year": 2014},
        "genres": ["Drama", "Horror", "Psychological", "Thriller"],
    },
    {
        "id": 100568,
        "title": {"english": "The Horizon", "romaji": "Supyeongseon"},
        "coverImage": {"large": "https://s4.anilist.co/file/anilistcdn/media/manga/cover/medium/bx100568-4BC0PsdwU4bL.png"},
        "averageScore": 85,
        "popularity": 55903,
        "chapters": 21,
        "status": "FINISHED",
        "startDate": {"year": 2016},
        "genres": ["Drama", "Slice of Life"],
    },
    {
        "id": 128067,
        "title": {"english": "SSS-Class Revival Hunter", "romaji": "SSS-geup Jugeoya Saneun Hunter"},
        "coverImage": {"large": "https://s4.anilist.co/file/anilistcdn/media/manga/cover/medium/bx128067-wnLBg6Cy1ncs.jpg"},
        "averageScore": 82,
        "popularity": 52399,
        "chapters": None,
        "status": "RELEASING",
        "startDate": {"year": 2020},
        "genres": ["Action", "Adventure", "Fantasy"],
    },
    {
        "id": 100954,
        "title": {"english": "Sweet Home", "romaji": "Sweet Home"},
        "coverImage": {"large": "https://s4.anilist.co/file/anilistcdn/media/manga/cover/medium/bx100954-xY0Vw2sRRo8t.png"},
        "averageScore": 81,
        "popularity": 49010,
        "chapters": 141,
        "status": "FINISHED",
        "startDate": {"year": 2017},
        "genres": ["Action", "Drama", "Horror", "Supernatural", "Thriller"],
    },
    {
        "id": 85141,
        "title": {"english": "The God of High School", "romaji": "God of High School"},
        "coverImage": {"large": "https://s4.anilist.co/file/anilistcdn/media/manga/cover/medium/bx85141-qHR957V3FVco.png"},
        "averageScore": 76,
        "popularity": 48963,
        "chapters": 569,
        "status": "FINISHED",
        "startDate": {"year": 2011},
        "genres": ["Action", "Adventure", "Comedy", "Supernatural"],
    },
    {
        "id": 126297,
        "title": {"english": "Teenage Mercenary", "romaji": "Iphagyongbyeong"},
        "coverImage": {"large": "https://s4.anilist.co/file/anilistcdn/media/manga/cover/medium/bx126297-SPiM7QtUnJ4P.jpg"},
        "averageScore": 80,
        "popularity": 47370,
        "chapters": None,
        "status": "RELEASING",
        "startDate": {"year": 2020},
        "genres": ["Action", "Drama"],
    },
]
