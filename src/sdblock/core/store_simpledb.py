"""Amazon SimpleDB attribute store built on boto3."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Optional, Sequence

import boto3
from botocore.exceptions import ClientError

from sdblock.utils.logging import get_logger

from .store import AttributeStore, Condition, ConditionFailed, Predicate


logger = get_logger("SimpleDBStore")

# SimpleDB reports a value mismatch and a missing expected attribute separately.
_CONDITION_CODES = {"ConditionalCheckFailed", "AttributeDoesNotExist"}


def quote_name(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


def quote_value(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def select_expression(domain: str, predicate: Predicate) -> str:
    """Render ``predicate`` as a SimpleDB select over item names."""
    if predicate.value is None:
        where = f"{quote_name(predicate.name)} is not null"
    else:
        where = f"{quote_name(predicate.name)} < {quote_value(predicate.value)}"
    return f"select itemName() from {quote_name(domain)} where {where}"


def _expected(condition: Condition) -> Dict[str, Any]:
    if not condition.exists:
        return {"Name": condition.name, "Exists": False}
    return {"Name": condition.name, "Value": condition.value, "Exists": True}


class SimpleDBAttributeStore(AttributeStore):
    """Store backed by SimpleDB conditional put/delete.

    The boto3 client is synchronous, so every call runs in a worker thread.
    Point reads use ``ConsistentRead``; selects do not.
    """

    def __init__(
        self,
        *,
        client: Any = None,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ) -> None:
        self._client = client or boto3.client("sdb", region_name=region_name, endpoint_url=endpoint_url)

    def _call(self, operation: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            return getattr(self._client, operation)(**kwargs)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in _CONDITION_CODES:
                raise ConditionFailed(f"{operation} on {kwargs.get('ItemName')!r}: {code}") from exc
            raise

    async def create_domain(self, domain: str) -> None:
        logger.info("Creating SimpleDB domain %s", domain)
        await asyncio.to_thread(self._call, "create_domain", DomainName=domain)

    async def get(self, domain: str, item: str) -> Dict[str, List[str]]:
        response = await asyncio.to_thread(
            self._call,
            "get_attributes",
            DomainName=domain,
            ItemName=item,
            ConsistentRead=True,
        )
        attributes: Dict[str, List[str]] = {}
        for attribute in response.get("Attributes", []):
            attributes.setdefault(attribute["Name"], []).append(attribute["Value"])
        return attributes

    async def put(
        self,
        domain: str,
        item: str,
        attributes: Mapping[str, str],
        condition: Optional[Condition] = None,
    ) -> None:
        kwargs: Dict[str, Any] = {
            "DomainName": domain,
            "ItemName": item,
            "Attributes": [
                {"Name": name, "Value": value, "Replace": True} for name, value in attributes.items()
            ],
        }
        if condition is not None:
            kwargs["Expected"] = _expected(condition)
        await asyncio.to_thread(self._call, "put_attributes", **kwargs)

    async def delete(
        self,
        domain: str,
        item: str,
        names: Optional[Sequence[str]] = None,
        condition: Optional[Condition] = None,
    ) -> None:
        kwargs: Dict[str, Any] = {"DomainName": domain, "ItemName": item}
        if names is not None:
            if not names:
                return
            kwargs["Attributes"] = [{"Name": name} for name in names]
        if condition is not None:
            kwargs["Expected"] = _expected(condition)
        await asyncio.to_thread(self._call, "delete_attributes", **kwargs)

    async def query(self, domain: str, predicate: Predicate) -> List[str]:
        return await asyncio.to_thread(self._select, select_expression(domain, predicate))

    def _select(self, expression: str) -> List[str]:
        names: List[str] = []
        kwargs: Dict[str, Any] = {"SelectExpression": expression}
        while True:
            response = self._call("select", **kwargs)
            names.extend(item["Name"] for item in response.get("Items", []))
            token = response.get("NextToken")
            if not token:
                return names
            kwargs["NextToken"] = token
