"""
GeoGossip API のデプロイ後検証スクリプト
AWS認証情報が設定されていることが前提

実行: geogossip-verify または python -m geogossip.verify_deployment
"""
import os
import sys

import boto3
import httpx

from .config import Settings, resolve_api_base_url
from .database import FEED_INDEX, GOSSIP_TYPE_INDEX


REQUIRED_INDEXES = (FEED_INDEX, GOSSIP_TYPE_INDEX)
REQUIRED_LAMBDA_ENV = ("DYNAMODB_TABLE_NAME",)


def check_dynamodb_table(table_name: str) -> bool:
    """DynamoDB テーブルとインデックスを確認"""
    print("\n✓ DynamoDB テーブル確認")
    try:
        dynamodb = boto3.resource("dynamodb")
        table = dynamodb.Table(table_name)

        # テーブルが存在するか確認
        print(f"  ✓ テーブル '{table_name}' が存在します")
        print(f"    - Status: {table.table_status}")

        index_names = {index["IndexName"] for index in table.global_secondary_indexes or []}
        for index_name in REQUIRED_INDEXES:
            if index_name in index_names:
                print(f"    ✓ インデックス {index_name}")
            else:
                print(f"    ✗ インデックス {index_name} が見つかりません")
                return False
        return True
    except Exception as e:
        print(f"  ✗ DynamoDB テーブルエラー: {e}")
        print("    → デプロイを実行してください")
        return False


def check_lambda_function(function_name: str) -> bool:
    """Lambda 関数を確認"""
    print("\n✓ Lambda 関数確認")
    try:
        client = boto3.client("lambda")
        response = client.get_function(FunctionName=function_name)

        function_config = response["Configuration"]
        print(f"  ✓ Lambda 関数 '{function_name}' が存在します")
        print(f"    - Runtime: {function_config['Runtime']}")
        print(f"    - Handler: {function_config['Handler']}")

        # 環境変数を確認
        env_vars = function_config.get("Environment", {}).get("Variables", {})
        for var in REQUIRED_LAMBDA_ENV:
            if var in env_vars:
                print(f"    ✓ 環境変数 {var}: {env_vars[var]}")
            else:
                print(f"    ✗ 環境変数 {var} が見つかりません")
                return False
        return True
    except Exception as e:
        print(f"  ✗ Lambda 関数エラー: {e}")
        return False


def check_api_health(base_url: str) -> bool:
    """/health エンドポイントを確認"""
    print("\n✓ API ヘルスチェック")
    try:
        response = httpx.get(f"{base_url}/health", timeout=10)
        if response.status_code == 200:
            print(f"  ✓ {base_url} 応答あり")
            return True
        print(f"  ✗ ステータス {response.status_code}")
        return False
    except httpx.HTTPError as e:
        print(f"  ✗ API 接続エラー: {e}")
        return False


def main() -> int:
    """メイン検証関数"""
    settings = Settings.from_env()
    function_name = os.environ.get("GOSSIP_LAMBDA_NAME", "geogossip-api")

    print("\n" + "=" * 60)
    print("GeoGossip API デプロイ検証")
    print("=" * 60)

    results = [
        ("DynamoDB テーブル", check_dynamodb_table(settings.table_name)),
        ("Lambda 関数", check_lambda_function(function_name)),
        ("API ヘルスチェック", check_api_health(resolve_api_base_url(settings))),
    ]

    # 結果サマリー
    print("\n" + "=" * 60)
    print("検証結果サマリー")
    print("=" * 60)

    all_passed = True
    for name, passed in results:
        status = "✓ PASS" if passed else "✗ FAIL"
        print(f"{status}: {name}")
        if not passed:
            all_passed = False

    print("\n" + "=" * 60)
    if all_passed:
        print("✓ すべての検証に合格しました！")
        return 0
    print("✗ いくつかの検証が失敗しました。上記を修正してください。")
    return 1


if __name__ == "__main__":
    sys.exit(main())
