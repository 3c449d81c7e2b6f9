# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
"""
keyedgraph Trade Contracts Demo

Stores two trade contracts that share a seller, searches them by meaning,
then deletes one and shows the shared seller is still there.

Requirements:
    pip install -e .[sentence-transformers]

Usage:
    Run Dgraph on localhost:8080 with this schema applied (POST to /alter):

        TradeContract.id: string @index(exact) @upsert .
        TradeContract.status: string @index(exact) .
        TradeContract.embedding: float32vector @index(hnsw(metric:"euclidean")) .
        TradeContract.seller: uid @reverse .
        TradeContract.buyer: uid @reverse .
        TradeContract.broker: uid @reverse .
        TradeContract.productGoods: uid @reverse .
        Member.id: string @index(exact) @upsert .
        Member.companyName: string @index(exact) .
        ProductGoods.name: string @index(exact) @upsert .
        ProductGoods.commodityReference: uid @reverse .
        CommodityReference.id: string @index(exact) @upsert .
        CommodityReference.name: string @index(exact) .

    python3 examples/trade_demo.py
"""
import logging
import sys

from keyedgraph import DgraphConnection, GraphClient, KeyedGraphError, Settings
from keyedgraph.adapters import SentenceTransformerEmbedder
from keyedgraph.trade import (
    TRADE_SCHEMA,
    CommodityReference,
    Member,
    ProductGoods,
    TradeContract,
    delete_trade_contract,
    get_trade_contract,
    search_trade_contracts,
    search_trade_contracts_by_company,
    upsert_trade_contract,
)


def sample_contracts():
    seller = Member(id="M-100", company_name="Santos Export Ltda")
    return [
        TradeContract(
            id="TC-1",
            contract_no="2024-001",
            contract_date="2024-03-01",
            status="ACTIVE",
            seller=seller,
            buyer=Member(id="M-200", company_name="Hamburg Roasters GmbH"),
            product_goods=ProductGoods(
                name="Arabica green beans",
                quantity=320,
                origin_country="Brazil",
                commodity_reference=CommodityReference(id="KC", symbol="KC", name="Coffee", category="Softs"),
            ),
            fixed_price=False,
            pricing_method="ICE front month + 12c",
        ),
        TradeContract(
            id="TC-2",
            contract_no="2024-002",
            contract_date="2024-03-09",
            status="ACTIVE",
            seller=seller,
            buyer=Member(id="M-300", company_name="Osaka Sugar Co"),
            product_goods=ProductGoods(
                name="Raw cane sugar",
                quantity=5000,
                origin_country="Brazil",
                commodity_reference=CommodityReference(id="SB", symbol="SB", name="Sugar", category="Softs"),
            ),
            fixed_price=True,
            pricing_method="FOB Santos",
        ),
    ]


def main():
    logging.basicConfig(level=logging.INFO)
    print("--- keyedgraph Trade Contracts Demo ---")

    settings = Settings.from_env()
    try:
        print(f"Loading model '{settings.embedding_model}'...")
        embedder = SentenceTransformerEmbedder(settings.embedding_model)
    except ImportError:
        print("❌ Error: sentence-transformers not installed.")
        print("Run: pip install sentence-transformers")
        sys.exit(1)

    connection = DgraphConnection.from_settings(settings)
    client = GraphClient(connection, TRADE_SCHEMA, embed=embedder)

    try:
        # 1. Upsert
        for contract in sample_contracts():
            res = upsert_trade_contract(client, contract)
            print(f"✅ Upserted {contract.id} as {res['uid']} ({len(res['created'])} new node(s))")

        # 2. Semantic search
        query = "coffee beans from Brazil"
        print(f"\n[Action] Searching for: '{query}'")
        for hit in search_trade_contracts(client, query, top_k=2):
            print(f"  {hit.id}: {hit.description}")

        # 3. Reverse lookup through the shared seller
        by_seller = search_trade_contracts_by_company(client, "Santos Export Ltda")
        print(f"\nSantos Export Ltda is party to: {[c.id for c in by_seller]}")

        # 4. Delete one contract
        matched = delete_trade_contract(client, "TC-1")
        print(f"\n[Action] Deleted TC-1 ({matched} node matched)")
        remaining = get_trade_contract(client, "TC-2")
        if remaining is not None and remaining.seller is not None:
            print(f"🎉 Seller still attached to TC-2: {remaining.seller.company_name}")
        else:
            print("⚠️ TC-2 lost its seller.")
    except KeyedGraphError as e:
        print(f"❌ {type(e).__name__}: {e}")
        sys.exit(1)
    finally:
        connection.close()


if __name__ == "__main__":
    main()
