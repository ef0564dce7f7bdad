from redflag.feature_extractors import extract_urls
from redflag.headers import (
    FLAG_FREE_ROLE, FLAG_LOOKALIKE, FLAG_REPLY_TO, FLAG_RETURN_PATH, FLAG_UNRELATED_LINKS,
    analyze_sender, is_lookalike_domain, parse_email_headers, registrable_label,
)

SPOOFED = (
    'From: "PayPal Support" <service@paypa1.com>\n'
    "Reply-To: refunds@collector-mail.ru\n"
    "Return-Path: <bounce@mailer.paypa1.com>\n"
    "Subject: Your account is limited\n"
    "\n"
    "Please confirm your identity at https://paypal.com.account-review.info/login\n"
)


def test_parse_headers():
    headers = parse_email_headers(SPOOFED)
    assert headers.from_header == '"PayPal Support" <service@paypa1.com>'
    assert headers.from_email == "service@paypa1.com"
    assert headers.reply_email == "refunds@collector-mail.ru"
    assert headers.return_email == "bounce@mailer.paypa1.com"


def test_spoofed_sender_flags():
    result = analyze_sender(SPOOFED, extract_urls(SPOOFED))
    assert result.sender_email == "service@paypa1.com"
    assert result.domain == "paypa1.com"
    assert result.flags == [FLAG_REPLY_TO, FLAG_RETURN_PATH, FLAG_LOOKALIKE, FLAG_UNRELATED_LINKS]


def test_free_mail_claiming_role():
    text = "From: IT Helpdesk <it.helpdesk.team@gmail.com>\nSubject: Password expiry\n\nYour password expires today."
    result = analyze_sender(text, extract_urls(text))
    assert result.domain == "gmail.com"
    assert result.flags == [FLAG_FREE_ROLE]


def test_matching_headers_raise_nothing():
    text = (
        "From: Dana <dana@contoso.com>\n"
        "Reply-To: dana@contoso.com\n"
        "Subject: notes\n\n"
        "Slides are on https://portal.contoso.com/decks"
    )
    result = analyze_sender(text, extract_urls(text))
    assert result.flags == []
    assert result.reply_to == "dana@contoso.com"


def test_no_headers_is_empty_not_an_error():
    result = analyze_sender("just a pasted body with no headers", [])
    assert result.to_dict() == {
        "sender_email": "",
        "from_header": "",
        "reply_to": "",
        "return_path": "",
        "domain": "",
        "flags": [],
    }


def test_sender_hint_wins():
    text = "From: someone@contoso.com\n\nhello"
    result = analyze_sender(text, [], sender_hint="  Boss@Fabrikam.COM ")
    assert result.sender_email == "boss@fabrikam.com"
    assert result.domain == "fabrikam.com"


def test_headers_beyond_scan_window_are_ignored():
    text = "\n" * 80 + "From: late@contoso.com"
    assert parse_email_headers(text).from_header == ""


def test_lookalike_domains():
    assert is_lookalike_domain("xn--pypal-4ve.com")
    assert is_lookalike_domain("a-b-c-d.com")
    assert is_lookalike_domain("secure-billing.net")
    assert is_lookalike_domain("paypa1.com")
    assert not is_lookalike_domain("paypal.com")
    assert not is_lookalike_domain("mail.paypal.com")
    assert not is_lookalike_domain("gmail.com")
    assert not is_lookalike_domain("")


def test_regional_brand_domains_are_not_lookalikes():
    for domain in ("apple.co.uk", "amazon.co.jp", "google.ca", "microsoft.de", "paypal.de"):
        assert not is_lookalike_domain(domain), domain
    assert registrable_label("mail.apple.co.uk") == "apple"


def test_regional_sender_raises_no_lookalike_flag():
    text = "From: Amazon <shipment-tracking@amazon.co.jp>\nSubject: Your order has shipped\n\nThanks for shopping."
    result = analyze_sender(text, [])
    assert result.domain == "amazon.co.jp"
    assert FLAG_LOOKALIKE not in result.flags
