#encoding=utf8
#!/bin/env python
# Run after the contracts are optimized into the artifacts directory.
import os
import sys
import traceback

HERE = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.join(HERE, ".."))

from finschia import SigningFinschiaClient
from finschia_wallet import DirectSecp256k1HdWallet, make_link_path
from token_scenario import ENDPOINT, alice, build_scenario

def main():
	print("test")
	wallet = DirectSecp256k1HdWallet.from_mnemonic(alice['mnemonic'],
		hd_paths=[make_link_path(0), make_link_path(1), make_link_path(2), make_link_path(3)],
		prefix="link")
	client = SigningFinschiaClient.connect_with_signer(ENDPOINT, wallet)

	token_wasm = open(os.path.join(HERE, "../artifacts/token_standard.wasm"), 'rb').read()
	caller_wasm = open(os.path.join(HERE, "../artifacts/token_caller.wasm"), 'rb').read()
	build_scenario(client, token_wasm, caller_wasm).run()

if __name__ == "__main__":
	try:
		main()
	except Exception:
		traceback.print_exc()
		sys.exit(1)
	print("All done")
	sys.exit(0)
