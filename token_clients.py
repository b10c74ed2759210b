#encoding=utf8
#!/bin/env python
import json

from finschia import GasPrice, calculate_fee

DEFAULT_GAS_PRICE = "0.025cony"

UPLOAD_GAS = 1500000
INSTANTIATE_GAS = 500000
TOKEN_GAS = 150000
CALLER_GAS = 200000

def dump_events(events):
	return json.dumps(events, separators=(',', ':'))

def deploy_contract(client, sender, wasm_data, gas_price=DEFAULT_GAS_PRICE):
	upload_fee = calculate_fee(UPLOAD_GAS, GasPrice.from_string(gas_price))
	receipt = client.upload(sender, wasm_data, upload_fee, "Upload standard contract")
	print("Upload succeeded. Receipt: %s" % json.dumps(receipt._asdict(), separators=(',', ':')))
	return receipt.code_id


class TokenClient(object):
	def __init__(self, client, code_id, gas_price=DEFAULT_GAS_PRICE):
		self.client = client
		self.code_id = code_id
		self.gas_price = GasPrice.from_string(gas_price)

	def instantiate_contract(self, sender, init_data):
		fee = calculate_fee(INSTANTIATE_GAS, self.gas_price)
		res = self.client.instantiate(sender, self.code_id, init_data['msg'], init_data['label'], fee,
			memo="Create a Test Token", admin=init_data['admin'])
		print("Contract instantiated at %s in %s" % (res.contract_address, res.transaction_hash))
		return res.contract_address

	def transfer(self, contract_address, sender, recipient, amount, gas_limit=TOKEN_GAS):
		fee = calculate_fee(gas_limit, self.gas_price)
		msg = {
			'transfer': {
				'recipient': recipient,
				'amount': amount,
			},
		}
		# the error is handed back so the scenario can keep going
		try:
			res = self.client.execute(sender, contract_address, msg, fee)
			print("Transfer txHash: %s, events: %s" % (res.transaction_hash, dump_events(res.events)))
			return res.transaction_hash
		except Exception as error:
			return error

	def approve(self, contract_address, sender, spender, amount, current_allowance):
		fee = calculate_fee(TOKEN_GAS, self.gas_price)
		msg = {
			'approve': {
				'spender': spender,
				'amount': amount,
				'current_allowance': current_allowance,
			},
		}
		res = self.client.execute(sender, contract_address, msg, fee)
		print("Approve txHash: %s, events: %s" % (res.transaction_hash, dump_events(res.events)))
		return res.transaction_hash

	def transfer_from(self, contract_address, sender, owner, recipient, amount):
		fee = calculate_fee(TOKEN_GAS, self.gas_price)
		msg = {
			'transfer_from': {
				'owner': owner,
				'recipient': recipient,
				'amount': amount,
			},
		}
		res = self.client.execute(sender, contract_address, msg, fee)
		print("TransferFrom txHash: %s, events: %s" % (res.transaction_hash, dump_events(res.events)))
		return res.transaction_hash

	def balance(self, contract_address, owner):
		res = self.client.query_contract_smart(contract_address, {'balance': {'owner': owner}})
		return res['balance']

	def allowance(self, contract_address, owner, spender):
		res = self.client.query_contract_smart(contract_address, {'allowance': {'owner': owner, 'spender': spender}})
		return res['allowance']

	def info(self, contract_address):
		return self.client.query_contract_smart(contract_address, {'info': {}})

	def total_supply(self, contract_address):
		res = self.client.query_contract_smart(contract_address, {'total_supply': {}})
		return res['total_supply']


class CallerClient(object):
	"""Drives the caller contract, which forwards token calls to a token contract."""

	def __init__(self, client, code_id, gas_price=DEFAULT_GAS_PRICE):
		self.client = client
		self.code_id = code_id
		self.gas_price = GasPrice.from_string(gas_price)

	def instantiate_contract(self, sender):
		fee = calculate_fee(INSTANTIATE_GAS, self.gas_price)
		res = self.client.instantiate(sender, self.code_id, {}, "caller instantiate", fee,
			memo="Create a Test Token", admin=sender)
		print("Contract instantiated at %s in %s" % (res.contract_address, res.transaction_hash))
		return res.contract_address

	def transfer(self, contract_address, sender, contract, recipient, amount):
		fee = calculate_fee(CALLER_GAS, self.gas_price)
		msg = {
			'transfer': {
				'contract': contract,
				'recipient': recipient,
				'amount': amount,
			},
		}
		res = self.client.execute(sender, contract_address, msg, fee)
		print("Transfer(caller) txHash: %s, events: %s" % (res.transaction_hash, dump_events(res.events)))
		return res.transaction_hash

	def transfer_from(self, contract_address, sender, contract, owner, recipient, amount):
		fee = calculate_fee(CALLER_GAS, self.gas_price)
		msg = {
			'transfer_from': {
				'contract': contract,
				'owner': owner,
				'recipient': recipient,
				'amount': amount,
			},
		}
		res = self.client.execute(sender, contract_address, msg, fee)
		print("TransferFrom(caller) txHash: %s, events: %s" % (res.transaction_hash, dump_events(res.events)))
		return res.transaction_hash

	def approve(self, contract_address, sender, contract, spender, amount, current_allowance):
		fee = calculate_fee(CALLER_GAS, self.gas_price)
		msg = {
			'approve': {
				'contract': contract,
				'spender': spender,
				'amount': amount,
				'current_allowance': current_allowance,
			},
		}
		res = self.client.execute(sender, contract_address, msg, fee)
		print("Approve(caller) txHash: %s, events:%s" % (res.transaction_hash, dump_events(res.events)))
		return res.transaction_hash
