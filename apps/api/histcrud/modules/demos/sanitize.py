from __future__ import annotations

from typing import Tuple

_HTML_ESCAPES = {
    "&": "&amp;",
    '"': "&quot;",
    "'": "&#x27;",
    "<": "&lt;",
    ">": "&gt;",
    "/": "&#x2F;",
    "\\": "&#x5C;",
    "`": "&#96;",
}

_GMAIL_DOMAINS = ("gmail.com", "googlemail.com")

_ICLOUD_DOMAINS = ("icloud.com", "me.com")

_OUTLOOK_DOMAINS = (
    "hotmail.at", "hotmail.be", "hotmail.ca", "hotmail.cl", "hotmail.co.il", "hotmail.co.nz",
    "hotmail.co.th", "hotmail.co.uk", "hotmail.com", "hotmail.com.ar", "hotmail.com.au",
    "hotmail.com.br", "hotmail.com.gr", "hotmail.com.mx", "hotmail.com.pe", "hotmail.com.tr",
    "hotmail.com.vn", "hotmail.cz", "hotmail.de", "hotmail.dk", "hotmail.es", "hotmail.fr",
    "hotmail.hu", "hotmail.id", "hotmail.ie", "hotmail.in", "hotmail.it", "hotmail.jp",
    "hotmail.kr", "hotmail.lv", "hotmail.my", "hotmail.ph", "hotmail.pt", "hotmail.sa",
    "hotmail.sg", "hotmail.sk",
    "live.be", "live.co.uk", "live.com", "live.com.ar", "live.com.mx", "live.de", "live.es",
    "live.eu", "live.fr", "live.it", "live.nl", "msn.com",
    "outlook.at", "outlook.be", "outlook.cl", "outlook.co.il", "outlook.co.nz", "outlook.co.th",
    "outlook.com", "outlook.com.ar", "outlook.com.au", "outlook.com.br", "outlook.com.gr",
    "outlook.com.pe", "outlook.com.tr", "outlook.com.vn", "outlook.cz", "outlook.de",
    "outlook.dk", "outlook.es", "outlook.fr", "outlook.hu", "outlook.id", "outlook.ie",
    "outlook.in", "outlook.it", "outlook.jp", "outlook.kr", "outlook.lv", "outlook.my",
    "outlook.ph", "outlook.pt", "outlook.sa", "outlook.sg", "outlook.sk", "passport.com",
)

_YAHOO_DOMAINS = (
    "rocketmail.com", "yahoo.ca", "yahoo.co.uk", "yahoo.com", "yahoo.de", "yahoo.fr",
    "yahoo.in", "yahoo.it", "ymail.com",
)

_YANDEX_DOMAINS = ("yandex.ru", "yandex.ua", "yandex.kz", "yandex.com", "yandex.by", "ya.ru")


def escape_html(value: str) -> str:
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in value)


def _provider_rules(local: str, domain: str) -> Tuple[str, str]:
    if domain in _GMAIL_DOMAINS:
        return local.split("+", 1)[0].replace(".", ""), "gmail.com"
    if domain in _ICLOUD_DOMAINS or domain in _OUTLOOK_DOMAINS:
        return local.split("+", 1)[0], domain
    if domain in _YAHOO_DOMAINS:
        # yahoo sub-addresses are the last '-' segment
        head, sep, _ = local.rpartition("-")
        return (head if sep else local), domain
    if domain in _YANDEX_DOMAINS:
        return local, "yandex.ru"
    return local, domain


def normalize_email(value: str) -> str:
    """
    Canonical form of an address:
    - lowercase
    - gmail/googlemail: drop dots and '+tag', domain -> gmail.com
    - icloud, outlook/hotmail/live: drop '+tag'
    - yahoo: drop the trailing '-tag'
    - yandex aliases -> yandex.ru
    """
    raw = (value or "").strip()
    local, sep, domain = raw.rpartition("@")
    if not sep or not local or not domain:
        return raw.lower()

    local, domain = _provider_rules(local.lower(), domain.lower())
    if not local:
        return raw.lower()
    return f"{local}@{domain}"
