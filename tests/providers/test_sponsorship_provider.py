"""
Tests for the sponsorship service provider.
"""

import json

import httpx
import pytest

from supertx.providers.sponsorship import SponsorshipConfig, SponsorshipProvider
from supertx.types.quote import Quote

from tests.factories import ACCOUNT, quote_payload


def make_provider(handler) -> SponsorshipProvider:
    return SponsorshipProvider(
        SponsorshipConfig(base_url="https://sponsor.test/v1"),
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_get_nonce():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"/v1/sponsorship/nonce/8453/{ACCOUNT}"
        return httpx.Response(200, json={"nonce": "12", "nonceKey": "3"})

    nonce, nonce_key = await make_provider(handler).get_nonce(8453, ACCOUNT)

    assert (nonce, nonce_key) == (12, 3)


@pytest.mark.asyncio
async def test_sign_quote_returns_cosigned_quote():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        body = json.loads(request.content)
        body["paymentInfo"]["sponsored"] = True
        return httpx.Response(200, json=body)

    quote = Quote.model_validate(quote_payload())
    cosigned = await make_provider(handler).sign_quote(8453, ACCOUNT, quote)

    assert cosigned.hash == quote.hash
    assert cosigned.payment_info.sponsored is True
