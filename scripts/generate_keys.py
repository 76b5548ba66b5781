#!/usr/bin/env python3
"""
Generate an Ethereum signing account for relaycast.

This script generates:
- A BIP-39 mnemonic phrase
- The address at the selected m/44'/60'/0'/0 index
- A .env snippet with RELAYCAST_MNEMONIC / RELAYCAST_ACCOUNT_INDEX
"""

import argparse
import json
from pathlib import Path

from eth_account import Account as EthAccount

from relaycast.account import Account
from relaycast.account.account import DERIVATION_PATH


def generate_keys(output_dir: str = "./keys", account_index: int = 0, num_words: int = 12) -> dict:
    """
    Generate a new mnemonic and derive its account.

    Args:
        output_dir: Directory to save keys
        account_index: Address index on the derivation path
        num_words: Mnemonic length (12, 15, 18, 21 or 24)

    Returns:
        Dictionary with key info and address
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    _, mnemonic = EthAccount.create_with_mnemonic(num_words=num_words)
    account = Account.from_mnemonic(mnemonic, account_index=account_index)

    env_path = output_path / "relaycast.env"
    env_path.write_text(
        f"RELAYCAST_MNEMONIC=\"{mnemonic}\"\n"
        f"RELAYCAST_ACCOUNT_INDEX={account_index}\n"
    )
    env_path.chmod(0o600)

    info = {
        "env_path": str(env_path),
        "derivation_path": DERIVATION_PATH.format(index=account_index),
        "address": account.checksum_address,
    }

    info_path = output_path / "key_info.json"
    with open(info_path, "w") as f:
        json.dump(info, f, indent=2)

    return info


def main():
    parser = argparse.ArgumentParser(description="Generate an Ethereum signing account")
    parser.add_argument(
        "--output-dir", "-o",
        default="./keys",
        help="Output directory for keys (default: ./keys)"
    )
    parser.add_argument(
        "--index",
        type=int,
        default=0,
        help="Address index on the derivation path (default: 0)"
    )
    parser.add_argument(
        "--words",
        type=int,
        choices=[12, 15, 18, 21, 24],
        default=12,
        help="Mnemonic length (default: 12)"
    )
    parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite existing keys"
    )

    args = parser.parse_args()

    output_path = Path(args.output_dir)
    env_path = output_path / "relaycast.env"

    if env_path.exists() and not args.force:
        print(f"⚠️  Keys already exist at {args.output_dir}")
        print("   Use --force to overwrite")

        info_path = output_path / "key_info.json"
        if info_path.exists():
            with open(info_path) as f:
                info = json.load(f)
            print("\n📋 Existing Key Info:")
            print(f"   Address: {info['address']}")
        return

    print("🔑 Generating new Ethereum account...")
    info = generate_keys(args.output_dir, args.index, args.words)

    print("\n✅ Account generated successfully!")
    print(f"\n📁 Keys saved to: {args.output_dir}/")
    print("   - relaycast.env (KEEP SECRET!)")
    print("   - key_info.json")

    print(f"\n📬 Address ({info['derivation_path']}):")
    print(f"   {info['address']}")

    print("\n💡 To use it, copy relaycast.env into your .env or export its variables.")
    print("\n⚠️  IMPORTANT: Keep your mnemonic phrase secure!")


if __name__ == "__main__":
    main()
