#encoding=utf8
#!/bin/env python
import hmac
import hashlib
from collections import namedtuple

from bech32 import bech32_encode, convertbits
from Crypto.Hash import RIPEMD160
from ecdsa import SigningKey, SECP256k1
from ecdsa.util import sigencode_string_canonize
from mnemonic import Mnemonic

HARDENED = 0x80000000

Account = namedtuple('Account', ['address', 'algo', 'pubkey', 'hd_path'])

def make_link_path(index):
	return "m/44'/438'/0'/0/%d" % index

def parse_path(path):
	parts = path.split('/')
	if parts[0] != 'm':
		raise ValueError("Path must start with 'm': " + path)
	indexes = []
	for part in parts[1:]:
		if part.endswith("'"):
			indexes.append(int(part[:-1]) + HARDENED)
		else:
			indexes.append(int(part))
	return indexes

def compressed_pubkey(secret):
	sk = SigningKey.from_string(secret, curve=SECP256k1)
	return sk.get_verifying_key().to_string("compressed")

def derive_child(secret, chain_code, index):
	if index & HARDENED:
		data = b'\x00' + secret + index.to_bytes(4, 'big')
	else:
		data = compressed_pubkey(secret) + index.to_bytes(4, 'big')
	I = hmac.new(chain_code, data, hashlib.sha512).digest()
	il = int.from_bytes(I[:32], 'big')
	child = (il + int.from_bytes(secret, 'big')) % SECP256k1.order
	if il >= SECP256k1.order or child == 0:
		raise ValueError("Invalid child key at index %d" % index)
	return child.to_bytes(32, 'big'), I[32:]

def derive_path(seed, path):
	I = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
	secret, chain_code = I[:32], I[32:]
	for index in parse_path(path):
		secret, chain_code = derive_child(secret, chain_code, index)
	return secret

def pubkey_to_address(pubkey, prefix):
	h = RIPEMD160.new(hashlib.sha256(pubkey).digest()).digest()
	return bech32_encode(prefix, convertbits(h, 8, 5))


class DirectSecp256k1HdWallet(object):
	def __init__(self, secrets, hd_paths, prefix):
		self.prefix = prefix
		self.keys = {}
		self.accounts = []
		for secret, path in zip(secrets, hd_paths):
			pubkey = compressed_pubkey(secret)
			account = Account(pubkey_to_address(pubkey, prefix), 'secp256k1', pubkey, path)
			self.keys[account.address] = SigningKey.from_string(secret, curve=SECP256k1)
			self.accounts.append(account)

	@classmethod
	def from_mnemonic(cls, mnemonic, hd_paths=None, prefix='link', bip39_password=''):
		words = ' '.join(mnemonic.split())
		if not Mnemonic('english').check(words):
			raise ValueError("Invalid mnemonic")
		hd_paths = hd_paths or [make_link_path(0)]
		seed = Mnemonic.to_seed(words, passphrase=bip39_password)
		secrets = [derive_path(seed, path) for path in hd_paths]
		return cls(secrets, hd_paths, prefix)

	def get_accounts(self):
		return list(self.accounts)

	def get_account(self, address):
		for account in self.accounts:
			if account.address == address:
				return account
		raise ValueError("Address %s not found in wallet" % address)

	def sign_direct(self, address, sign_doc):
		if address not in self.keys:
			raise ValueError("Address %s not found in wallet" % address)
		return self.keys[address].sign_deterministic(sign_doc, hashfunc=hashlib.sha256,
			sigencode=sigencode_string_canonize)
