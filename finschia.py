#encoding=utf8
#!/bin/env python
import re
import json
import time
import gzip
import base64
import hashlib
import logging
from decimal import Decimal, ROUND_CEILING
from collections import namedtuple

import requests

logger = logging.getLogger(__name__)

MsgStoreCodeTypeUrl = "/cosmwasm.wasm.v1.MsgStoreCode"
MsgInstantiateContractTypeUrl = "/cosmwasm.wasm.v1.MsgInstantiateContract"
MsgExecuteContractTypeUrl = "/cosmwasm.wasm.v1.MsgExecuteContract"
PubKeyTypeUrl = "/cosmos.crypto.secp256k1.PubKey"
BaseAccountTypeUrl = "/cosmos.auth.v1beta1.BaseAccount"

AccountQueryPath = "/cosmos.auth.v1beta1.Query/Account"
SmartQueryPath = "/cosmwasm.wasm.v1.Query/SmartContractState"

SIGN_MODE_DIRECT = 1

UploadResult = namedtuple('UploadResult', [
	'checksum', 'original_size', 'compressed_size', 'code_id',
	'transaction_hash', 'height', 'gas_wanted', 'gas_used', 'events'])
InstantiateResult = namedtuple('InstantiateResult', [
	'contract_address', 'transaction_hash', 'height', 'gas_wanted', 'gas_used', 'events'])
ExecuteResult = namedtuple('ExecuteResult', [
	'transaction_hash', 'height', 'gas_wanted', 'gas_used', 'events'])
DeliverTxResponse = namedtuple('DeliverTxResponse', [
	'transaction_hash', 'height', 'code', 'raw_log', 'gas_wanted', 'gas_used', 'events'])


class RpcError(Exception):
	def __init__(self, code, message, data=None):
		Exception.__init__(self, "RPC error %s: %s %s" % (code, message, data or ''))
		self.code = code
		self.message = message
		self.data = data


class QueryError(Exception):
	def __init__(self, path, code, log):
		Exception.__init__(self, "Query %s failed with code %s: %s" % (path, code, log))
		self.path = path
		self.code = code
		self.log = log


class BroadcastTxError(Exception):
	def __init__(self, code, log, height=None, txhash=None):
		if height is None:
			msg = "Broadcasting transaction failed with code %s (codespace: sdk). Log: %s" % (code, log)
		else:
			msg = "Error when broadcasting tx %s at height %s. Code: %s; Raw log: %s" % (txhash, height, code, log)
		Exception.__init__(self, msg)
		self.code = code
		self.log = log
		self.height = height
		self.txhash = txhash


# protobuf wire encoding, only the field kinds the tx messages need

def encode_varint(n):
	buf = bytearray()
	while True:
		b = n & 0x7f
		n >>= 7
		if n:
			buf.append(b | 0x80)
		else:
			buf.append(b)
			return bytes(buf)

def decode_varint(buf, pos):
	result = 0
	shift = 0
	while True:
		if pos >= len(buf):
			raise ValueError("truncated varint")
		b = buf[pos]
		pos += 1
		result |= (b & 0x7f) << shift
		if not b & 0x80:
			return result, pos
		shift += 7

def pb_uint(num, value):
	if not value:
		return b''
	return encode_varint(num << 3) + encode_varint(value)

def pb_bytes(num, value):
	if isinstance(value, str):
		value = value.encode()
	if not value:
		return b''
	return encode_varint((num << 3) | 2) + encode_varint(len(value)) + value

def pb_message(num, value):
	# embedded messages are written even when empty
	return encode_varint((num << 3) | 2) + encode_varint(len(value)) + value

def pb_decode(buf):
	fields = {}
	pos = 0
	while pos < len(buf):
		key, pos = decode_varint(buf, pos)
		num, wire_type = key >> 3, key & 7
		if wire_type == 0:
			value, pos = decode_varint(buf, pos)
			fields.setdefault(num, []).append(value)
			continue
		if wire_type == 2:
			size, pos = decode_varint(buf, pos)
		elif wire_type == 1:
			size = 8
		elif wire_type == 5:
			size = 4
		else:
			raise ValueError("unsupported wire type %d" % wire_type)
		if pos + size > len(buf):
			raise ValueError("truncated field %d" % num)
		value = bytes(buf[pos:pos+size])
		pos += size
		fields.setdefault(num, []).append(value)
	return fields

def encode_any(type_url, value):
	return pb_bytes(1, type_url) + pb_bytes(2, value)

def encode_coin(coin):
	return pb_bytes(1, coin['denom']) + pb_bytes(2, coin['amount'])

def encode_coins(num, coins):
	return b''.join(pb_message(num, encode_coin(c)) for c in coins or [])

def encode_json(msg):
	return json.dumps(msg, separators=(',', ':')).encode()


def encode_store_code(sender, wasm):
	return encode_any(MsgStoreCodeTypeUrl, pb_bytes(1, sender) + pb_bytes(2, wasm))

def encode_instantiate_contract(sender, admin, code_id, label, msg, funds=None):
	value = pb_bytes(1, sender) + pb_bytes(2, admin or '') + pb_uint(3, code_id) \
		+ pb_bytes(4, label) + pb_bytes(5, encode_json(msg)) + encode_coins(6, funds)
	return encode_any(MsgInstantiateContractTypeUrl, value)

def encode_execute_contract(sender, contract, msg, funds=None):
	value = pb_bytes(1, sender) + pb_bytes(2, contract) + pb_bytes(3, encode_json(msg)) \
		+ encode_coins(5, funds)
	return encode_any(MsgExecuteContractTypeUrl, value)

def encode_tx_body(messages, memo=''):
	return b''.join(pb_message(1, m) for m in messages) + pb_bytes(2, memo)

def encode_auth_info(pubkey, sequence, fee):
	public_key = encode_any(PubKeyTypeUrl, pb_bytes(1, pubkey))
	mode_info = pb_message(1, pb_uint(1, SIGN_MODE_DIRECT))
	signer_info = pb_message(1, public_key) + pb_message(2, mode_info) + pb_uint(3, sequence)
	fee_bytes = encode_coins(1, fee['amount']) + pb_uint(2, int(fee['gas']))
	return pb_message(1, signer_info) + pb_message(2, fee_bytes)

def encode_sign_doc(body_bytes, auth_info_bytes, chain_id, account_number):
	return pb_bytes(1, body_bytes) + pb_bytes(2, auth_info_bytes) \
		+ pb_bytes(3, chain_id) + pb_uint(4, account_number)

def encode_tx_raw(body_bytes, auth_info_bytes, signatures):
	return pb_bytes(1, body_bytes) + pb_bytes(2, auth_info_bytes) \
		+ b''.join(pb_message(3, s) for s in signatures)

def decode_base_account(account_any):
	fields = pb_decode(account_any)
	type_url = fields[1][0].decode()
	if type_url != BaseAccountTypeUrl:
		raise ValueError("unsupported account type: " + type_url)
	account = pb_decode(fields.get(2, [b''])[0])
	return {
		'address': account.get(1, [b''])[0].decode(),
		'account_number': account.get(3, [0])[0],
		'sequence': account.get(4, [0])[0],
	}


class GasPrice(object):
	def __init__(self, amount, denom):
		self.amount = Decimal(amount)
		self.denom = denom

	@classmethod
	def from_string(cls, gas_price):
		m = re.match(r'^(\d+(?:\.\d+)?)([a-z][a-z0-9]*)$', gas_price)
		if m is None:
			raise ValueError("Invalid gas price string: " + gas_price)
		amount, denom = m.groups()
		if len(denom) < 3 or len(denom) > 128:
			raise ValueError("Denom must be between 3 and 128 characters")
		return cls(amount, denom)

	def __str__(self):
		return "%s%s" % (self.amount, self.denom)

def calculate_fee(gas_limit, gas_price):
	if isinstance(gas_price, str):
		gas_price = GasPrice.from_string(gas_price)
	amount = (gas_price.amount * gas_limit).to_integral_value(rounding=ROUND_CEILING)
	return {
		'amount': [{'denom': gas_price.denom, 'amount': str(amount)}],
		'gas': str(gas_limit),
	}


def decode_events(events, base64_encoded=True):
	result = []
	for event in events or []:
		attributes = []
		for attr in event.get('attributes') or []:
			key = attr.get('key') or ''
			value = attr.get('value') or ''
			if base64_encoded:
				key = base64.b64decode(key).decode('utf-8', 'replace')
				value = base64.b64decode(value).decode('utf-8', 'replace')
			attributes.append({'key': key, 'value': value})
		result.append({'type': event['type'], 'attributes': attributes})
	return result

def find_attribute(events, event_type, key):
	for event in events:
		if event['type'] != event_type:
			continue
		for attr in event['attributes']:
			if attr['key'] == key:
				return attr['value']
	raise ValueError('Could not find attribute "%s" in event "%s"' % (key, event_type))


class SigningFinschiaClient(object):
	def __init__(self, url, wallet, base64_events=True, poll_interval=3, broadcast_timeout=60):
		self.url = url
		self.wallet = wallet
		self.base64_events = base64_events
		self.poll_interval = poll_interval
		self.broadcast_timeout = broadcast_timeout
		self.chain_id = None
		self.request_id = 0

	@classmethod
	def connect_with_signer(cls, url, wallet, **kwargs):
		client = cls(url, wallet, **kwargs)
		client.get_chain_id()
		return client

	def rpc(self, method, params):
		self.request_id += 1
		payload = {
			'jsonrpc': '2.0',
			'id': self.request_id,
			'method': method,
			'params': params,
		}
		logger.debug("rpc %s id=%d", method, self.request_id)
		rsps = requests.post(self.url, data=json.dumps(payload), headers={'Content-Type': 'application/json'})
		obj = json.loads(rsps.content)
		if obj.get('error'):
			err = obj['error']
			raise RpcError(err.get('code'), err.get('message'), err.get('data'))
		return obj['result']

	def get_chain_id(self):
		if self.chain_id is None:
			status = self.rpc('status', {})
			self.chain_id = status['node_info']['network']
		return self.chain_id

	def abci_query(self, path, data):
		result = self.rpc('abci_query', {'path': path, 'data': data.hex(), 'prove': False})
		response = result['response']
		code = int(response.get('code') or 0)
		if code != 0:
			raise QueryError(path, code, response.get('log'))
		return base64.b64decode(response.get('value') or '')

	def get_account(self, address):
		try:
			value = self.abci_query(AccountQueryPath, pb_bytes(1, address))
		except QueryError as e:
			raise ValueError("Account '%s' does not exist on chain. Send some tokens there "
				"before trying to query sequence. (%s)" % (address, e.log)) from e
		return decode_base_account(pb_decode(value)[1][0])

	def query_contract_smart(self, address, query):
		value = self.abci_query(SmartQueryPath, pb_bytes(1, address) + pb_bytes(2, encode_json(query)))
		data = pb_decode(value).get(1, [b''])[0]
		return json.loads(data)

	def sign(self, sender, messages, fee, memo=''):
		account = self.wallet.get_account(sender)
		chain_id = self.get_chain_id()
		onchain = self.get_account(sender)
		body_bytes = encode_tx_body(messages, memo)
		auth_info_bytes = encode_auth_info(account.pubkey, onchain['sequence'], fee)
		sign_doc = encode_sign_doc(body_bytes, auth_info_bytes, chain_id, onchain['account_number'])
		signature = self.wallet.sign_direct(sender, sign_doc)
		return encode_tx_raw(body_bytes, auth_info_bytes, [signature])

	def broadcast_tx(self, tx_bytes):
		checked = self.rpc('broadcast_tx_sync', {'tx': base64.b64encode(tx_bytes).decode()})
		code = int(checked.get('code') or 0)
		if code != 0:
			raise BroadcastTxError(code, checked.get('log'))
		txhash = hashlib.sha256(tx_bytes).digest()
		logger.debug("broadcast tx %s", txhash.hex().upper())
		deadline = time.time() + self.broadcast_timeout
		while True:
			try:
				result = self.rpc('tx', {'hash': base64.b64encode(txhash).decode(), 'prove': False})
				break
			except RpcError as e:
				if time.time() >= deadline:
					raise TimeoutError("Transaction with ID %s was submitted but was not yet found "
						"on the chain. You might want to check later. (%s)" % (txhash.hex().upper(), e))
				logger.debug("tx %s not found yet, polling", txhash.hex().upper())
				time.sleep(self.poll_interval)
		return self.make_deliver_response(result)

	def make_deliver_response(self, result):
		tx_result = result['tx_result']
		return DeliverTxResponse(
			transaction_hash=result['hash'].upper(),
			height=int(result['height']),
			code=int(tx_result.get('code') or 0),
			raw_log=tx_result.get('log', ''),
			gas_wanted=int(tx_result.get('gas_wanted') or 0),
			gas_used=int(tx_result.get('gas_used') or 0),
			events=decode_events(tx_result.get('events'), self.base64_events),
		)

	def sign_and_broadcast(self, sender, messages, fee, memo=''):
		tx_bytes = self.sign(sender, messages, fee, memo)
		res = self.broadcast_tx(tx_bytes)
		if res.code != 0:
			raise BroadcastTxError(res.code, res.raw_log, res.height, res.transaction_hash)
		return res

	def upload(self, sender, wasm, fee, memo=''):
		compressed = gzip.compress(wasm, compresslevel=9)
		msg = encode_store_code(sender, compressed)
		res = self.sign_and_broadcast(sender, [msg], fee, memo)
		return UploadResult(
			checksum=hashlib.sha256(wasm).hexdigest(),
			original_size=len(wasm),
			compressed_size=len(compressed),
			code_id=int(find_attribute(res.events, 'store_code', 'code_id')),
			transaction_hash=res.transaction_hash,
			height=res.height,
			gas_wanted=res.gas_wanted,
			gas_used=res.gas_used,
			events=res.events,
		)

	def instantiate(self, sender, code_id, msg, label, fee, memo='', admin=None, funds=None):
		instantiate_msg = encode_instantiate_contract(sender, admin, code_id, label, msg, funds)
		res = self.sign_and_broadcast(sender, [instantiate_msg], fee, memo)
		return InstantiateResult(
			contract_address=find_attribute(res.events, 'instantiate', '_contract_address'),
			transaction_hash=res.transaction_hash,
			height=res.height,
			gas_wanted=res.gas_wanted,
			gas_used=res.gas_used,
			events=res.events,
		)

	def execute(self, sender, contract, msg, fee, memo='', funds=None):
		execute_msg = encode_execute_contract(sender, contract, msg, funds)
		res = self.sign_and_broadcast(sender, [execute_msg], fee, memo)
		return ExecuteResult(
			transaction_hash=res.transaction_hash,
			height=res.height,
			gas_wanted=res.gas_wanted,
			gas_used=res.gas_used,
			events=res.events,
		)
