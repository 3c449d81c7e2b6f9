# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
"""
Trade contracts stored with keyedgraph.

A TradeContract owns its scalar fields, its embedding and its edges to
members and goods. Members are shared between contracts and are never
deleted along with a contract.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

from .deletion import eq_filter
from .graph import GraphClient, UpsertResult
from .markers import TYPE_TAG
from .model import from_tree, predicate, predicates_of, selection
from .protocol import ProtocolError
from .schema import SchemaRegistry


@dataclass
class Member:
    id: str = predicate("Member.id", default="")
    company_name: str = predicate("Member.companyName", default="")
    contact_details: str = predicate("Member.contactDetails", default="")
    member_public_key: str = predicate("Member.memberPublicKey", default="")


@dataclass
class CommodityReference:
    id: str = predicate("CommodityReference.id", default="")
    symbol: str = predicate("CommodityReference.symbol", default="")
    name: str = predicate("CommodityReference.name", default="")
    category: str = predicate("CommodityReference.category", default="")


@dataclass
class ProductGoods:
    name: str = predicate("ProductGoods.name", default="")
    quantity: int = predicate("ProductGoods.quantity", default=0)
    hs_code: str = predicate("ProductGoods.hsCode", default="")
    origin_country: str = predicate("ProductGoods.originCountry", default="")
    commodity_reference: Optional[CommodityReference] = predicate(
        "ProductGoods.commodityReference", default=None, omit_null=True)


@dataclass
class MoneyAmount:
    iso_currency_code: str = predicate("MoneyAmount.iSOCurrencyCode", default="")
    amount: float = predicate("MoneyAmount.amount", default=0.0)


@dataclass
class TradeContract:
    id: str = predicate("TradeContract.id", default="")
    contract_no: str = predicate("TradeContract.contractNo", default="")
    contract_date: str = predicate("TradeContract.contractDate", default="")
    status: str = predicate("TradeContract.status", default="")
    description: str = predicate("TradeContract.description", default="")
    seller: Optional[Member] = predicate("TradeContract.seller", default=None, omit_null=True)
    buyer: Optional[Member] = predicate("TradeContract.buyer", default=None, omit_null=True)
    broker: Optional[Member] = predicate("TradeContract.broker", default=None, omit_null=True)
    product_goods: Optional[ProductGoods] = predicate(
        "TradeContract.productGoods", default=None, omit_null=True)
    fixed_price: bool = predicate("TradeContract.fixedPrice", default=False)
    pricing_method: str = predicate("TradeContract.pricingMethod", default="")


EMBEDDING = "TradeContract.embedding"
CONTRACT_ID = "TradeContract.id"

TRADE_SCHEMA = SchemaRegistry()
TRADE_SCHEMA.register("TradeContract", CONTRACT_ID, [
    ("TradeContract.seller", "Member"),
    ("TradeContract.buyer", "Member"),
    ("TradeContract.broker", "Member"),
    ("TradeContract.productGoods", "ProductGoods"),
])
TRADE_SCHEMA.register("Member", "Member.id")
# Goods have no id of their own; the name is their business key.
TRADE_SCHEMA.register("ProductGoods", "ProductGoods.name", [
    ("ProductGoods.commodityReference", "CommodityReference"),
])
TRADE_SCHEMA.register("CommodityReference", "CommodityReference.id")

# Everything a contract owns. Member and goods nodes lose the edge only.
OWNED_PREDICATES = predicates_of(TradeContract) + [EMBEDDING, TYPE_TAG]

CONTRACT_BODY = selection(TradeContract)


def describe_trade_contract(contract: TradeContract) -> str:
    """Searchable one-line description used as the embedding text."""
    description = f"Contract {contract.contract_no} dated {contract.contract_date}"

    if contract.seller is not None:
        description += f" Seller: {contract.seller.company_name}"
    if contract.buyer is not None:
        description += f" Buyer: {contract.buyer.company_name}"

    goods = contract.product_goods
    if goods is not None:
        description += f" Product: {goods.name}"
        if goods.commodity_reference is not None:
            description += f" Commodity: {goods.commodity_reference.name}"
        description += f" Quantity: {goods.quantity}"
        description += f" Origin: {goods.origin_country}"

    pricing_type = "Fixed" if contract.fixed_price else "Variable"
    description += f" Pricing: {pricing_type} - {contract.pricing_method}"
    return description


def upsert_trade_contract(client: GraphClient, contract: TradeContract) -> UpsertResult:
    """
    Store `contract`, its members and goods, keyed by their ids. The
    generated description is written to the contract and embedded.
    """
    contract.description = describe_trade_contract(contract)
    return client.upsert(
        "TradeContract",
        contract,
        embedding_predicate=EMBEDDING,
        embedding_text=contract.description,
    )


def get_trade_contract(client: GraphClient, contract_id: str) -> Optional[TradeContract]:
    return client.get(CONTRACT_ID, contract_id, result_type=TradeContract, body=CONTRACT_BODY)


def delete_trade_contract(client: GraphClient, contract_id: str) -> int:
    return client.delete(eq_filter(CONTRACT_ID, contract_id), OWNED_PREDICATES)


def search_trade_contracts(client: GraphClient, search: str, top_k: int = 5) -> List[TradeContract]:
    return client.search_text(search, EMBEDDING, TradeContract, top_k=top_k, body=CONTRACT_BODY)


def _indent(body: str, spaces: int) -> str:
    pad = " " * spaces
    return "\n".join(pad + line for line in body.splitlines())


COMMODITY_QUERY = """
query byCommodity($name: string) {{
  list(func: eq(CommodityReference.name, $name)) {{
    goods: ~ProductGoods.commodityReference {{
      contracts: ~TradeContract.productGoods {{
{body}
      }}
    }}
  }}
}}
"""

PARTY_QUERY = """
query byParty($value: string) {{
  list(func: eq({member_field}, $value)) {{
    as_seller: ~TradeContract.seller {{
{body}
    }}
    as_buyer: ~TradeContract.buyer {{
{body}
    }}
  }}
}}
"""

STATUS_QUERY = """
query byStatus($status: string) {{
  list(func: eq(TradeContract.status, $status)) {{
{body}
  }}
}}
"""


def _rows(data: Dict, name: str) -> List[Dict]:
    rows = data.get(name) or []
    if not isinstance(rows, list):
        raise ProtocolError(f"invalid response shape: {name!r} is {type(rows).__name__}")
    return rows


def get_trade_contracts_by_commodity(client: GraphClient, commodity_name: str) -> List[TradeContract]:
    """Contracts whose goods reference a commodity with this name."""
    dql = COMMODITY_QUERY.format(body=_indent(CONTRACT_BODY, 8))
    data = client.connection.query(dql, {"$name": commodity_name})

    results = []
    for commodity in _rows(data, "list"):
        for goods in _rows(commodity, "goods"):
            for contract in _rows(goods, "contracts"):
                results.append(from_tree(TradeContract, contract))
    return results


def _contracts_by_party(client: GraphClient, member_field: str, value: str) -> List[TradeContract]:
    dql = PARTY_QUERY.format(member_field=member_field, body=_indent(CONTRACT_BODY, 6))
    data = client.connection.query(dql, {"$value": value})

    seen = set()
    results = []
    for member in _rows(data, "list"):
        for contract in _rows(member, "as_seller") + _rows(member, "as_buyer"):
            key = contract.get(CONTRACT_ID)
            if key is not None:
                if key in seen:
                    continue
                seen.add(key)
            results.append(from_tree(TradeContract, contract))
    return results


def search_trade_contracts_by_company(client: GraphClient, company_name: str) -> List[TradeContract]:
    """Contracts where the company is seller or buyer, each contract once."""
    return _contracts_by_party(client, "Member.companyName", company_name)


def get_member_trade_contracts(client: GraphClient, member_id: str) -> List[TradeContract]:
    """Contracts where the member is seller or buyer, each contract once."""
    return _contracts_by_party(client, "Member.id", member_id)


def get_trade_contracts_by_status(client: GraphClient, status: str) -> List[TradeContract]:
    dql = STATUS_QUERY.format(body=_indent(CONTRACT_BODY, 4))
    data = client.connection.query(dql, {"$status": status})
    return [from_tree(TradeContract, contract) for contract in _rows(data, "list")]
