# Product names containing any of these (case-insensitive) are not groceries
# and get dropped with their whole product group.
FORBIDDEN_GOODS = [
    "alverde",
    "bambucké",
    "do myčky",
    "doplněk stravy",
    "express menu",
    "filtr",
    "formičky",
    "gimcat",
    "holení",
    "hotovky",
    "inspirace",
    "jídelní set",
    "kartáček",
    "kolekce",
    "kolínská",
    "konkor",
    "koupele",
    "krku",
    "kráječ",
    "křeslo",
    "lepidlo",
    "mast",
    "matrace",
    "micelární",
    "motorový",
    "měděná",
    "na vlasy",
    "nosní",
    "obývací stěna",
    "okrasná",
    "pamlsky",
    "parfemovaná",
    "parfém",
    "pleť",
    "pleťová",
    "postel",
    "razítko",
    "rostoucí vejce",
    "rty",
    "severochema",
    "sklenice",
    "společenská hra",
    "stojánková baterie",
    "sůl koupelová",
    "tablety",
    "tescoma",
    "toaletní",
    "tělo",
    "vitamín",
    "vlasová voda",
    "vonné tyčinky",
    "vykrajovátka",
    "zdravá zahrada",
    "zubní",
    "zuby",
    "úklid",
    "ústní",
    "škrobenka",
    "šťouchadlo",
]

# Applied to the offer note in this order.
NOTE_REPLACEMENTS = [
    ("+3 Kč záloha na láhev", "zálohovaná lahev"),
    ("láhev", "lahev"),
    ("láhve", "lahve"),
    ("vybrané druhy", "různé druhy"),
]

# (substring of the normalized note, sub-category); the last matching rule wins.
SUBCATEGORY_RULES = [
    ("zálohovaná lahev", "lahev"),
    ("plech", "plech"),
]

CZ_TRANSLIT = str.maketrans(
    {
        "á": "a",
        "č": "c",
        "ď": "d",
        "é": "e",
        "ě": "e",
        "í": "i",
        "ľ": "l",
        "ň": "n",
        "ó": "o",
        "ř": "r",
        "š": "s",
        "ť": "t",
        "ú": "u",
        "ů": "u",
        "ý": "y",
        "ž": "z",
    }
)

DISCOUNT_DASHES = ("–", "—", "−")

# Prefixes removed from image URLs in the exports, in this order.
IMAGE_THUMBS_PREFIX = "https://img.kupi.cz/kupi/thumbs/"
IMAGE_PLACEHOLDER_URL = "https://img.kupi.cz/img/no_img/no_discounts.png"
IMAGE_PLACEHOLDER_MARK = "no_discounts"
IMAGE_HOST_PREFIX = "https://img.kupi.cz/"
IMAGE_DEFAULT_NAME = "default.png"
IMAGE_EXPORT_SUFFIXES = (".png", ".jpg")
IMAGE_EXPORT_EXT = ".webp"

USER_AGENTS = [
    "Mozilla/5.0 (Linux; Android 10; K) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/143.0.0.0 Mobile Safari/537.36",
    "Mozilla/5.0 (Linux; Android 11; CPH2251) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/116.0.0.0 Mobile Safari/537.36",
    "Mozilla/5.0 (Linux; Android 12; SM-A525F) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/117.0.0.0 Mobile Safari/537.36",
    "Mozilla/5.0 (Linux; Android 13; SM-G991U) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/117.0.0.0 Mobile Safari/537.36",
    "Mozilla/5.0 (Linux; Android 14; Pixel 8 Pro) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Mobile Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/128.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.6045.159 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/143.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Ubuntu; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.6167.85 Safari/537.36",
    "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:120.0.1) Gecko/20100101 Firefox/120.0.1",
    "Mozilla/5.0 (iPad; CPU OS 17_0_3 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0.1 Mobile/15E148 Safari/604.1",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_6_1 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.6 Mobile/15E148 Safari/604.1",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0_3 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0.1 Mobile/15E148 Safari/604.1",
]

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "cs-CZ,cs;q=0.9,en;q=0.8",
    "Connection": "keep-alive",
}

CSV_COLUMNS = [
    "Name",
    "Price",
    "PricePerUnit",
    "Discount",
    "Category",
    "SubCat",
    "Note",
    "Club",
    "Volume",
    "Market",
    "Validity",
    "Url",
    "ImageUrl",
    "Query",
]
