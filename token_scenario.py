#encoding=utf8
#!/bin/env python
import os

from token_clients import TokenClient, CallerClient, deploy_contract

ENDPOINT = os.environ.get("FINSCHIA_RPC", "http://localhost:26657")

alice = {
	'mnemonic': "mind flame tobacco sense move hammer drift crime ring globe art gaze cinnamon helmet cruise special produce notable negative wait path scrap recall have",
	'address0': "link146asaycmtydq45kxc8evntqfgepagygelel00h",
	'address1': "link1aaffxdz4dwcnjzumjm7h89yjw5c5wul88zvzuu",
	'address2': "link1ey0w0xj9v48vk82ht6mhqdlh9wqkx8enkpjwpr",
	'address3': "link1dfyywjglcfptn72axxhsslpy8ep6wq7wujasma",
}

# x/foundation module account
FOUNDATION_ADDRESS = "link190vt0vxc8c8vj24a7mm3fjsenfu8f5yxxj76cp"

inits = [
	{
		'label': "From deploy test.js",
		'msg': {
			'name': "A To Z Token",
			'symbol': "ATZ",
			'decimals': 6,
			'initial_balances': "1000000000",
		},
		'admin': alice['address0'],
	},
	{
		'label': "From deploy(2) test.js",
		'msg': {
			'name': "Second Token",
			'symbol': "SCD",
			'decimals': 6,
			'initial_balances': "1000000000",
		},
		'admin': alice['address1'],
	},
]


class Scenario(object):
	"""
	Named steps run strictly in order. Each step gets the results of the
	steps before it, keyed by step name. The first exception stops the run.
	"""

	def __init__(self):
		self.steps = []
		self.results = {}

	def step(self, name, func, banner=None):
		self.steps.append((name, func, banner))
		return self

	def run(self):
		for name, func, banner in self.steps:
			if banner:
				print("[%s]" % banner)
			self.results[name] = func(self.results)
		return self.results


def build_scenario(client, token_wasm, caller_wasm):
	a0, a1, a2, a3 = alice['address0'], alice['address1'], alice['address2'], alice['address3']
	clients = {}

	def deploy_token(r):
		code_id = deploy_contract(client, a0, token_wasm)
		clients['token'] = TokenClient(client, code_id)
		return code_id

	def deploy_caller(r):
		code_id = deploy_contract(client, a1, caller_wasm)
		clients['caller'] = CallerClient(client, code_id)
		return code_id

	def balance_of_caller(label):
		def query(r):
			bal = clients['token'].balance(r['token1'], r['caller1'])
			print("\ncontract %s: %s" % (label, bal))
			return bal
		return query

	s = Scenario()
	s.step('token_code_id', deploy_token)
	s.step('token1', lambda r: clients['token'].instantiate_contract(a0, inits[0]))
	s.step('transfer', lambda r: clients['token'].transfer(r['token1'], a0, a1, "1000"))
	s.step('approve', lambda r: clients['token'].approve(r['token1'], a0, a2, "1000000", "0"))
	s.step('transfer_from', lambda r: clients['token'].transfer_from(r['token1'], a2, a0, a3, "100000"))
	s.step('token2', lambda r: clients['token'].instantiate_contract(a1, inits[1]))
	s.step('transfer_to_contract',
		lambda r: clients['token'].transfer(r['token1'], a0, r['token2'], "1000", 200000),
		banner="Transfer token to other contract")
	s.step('transfer_to_foundation',
		lambda r: clients['token'].transfer(r['token1'], a0, FOUNDATION_ADDRESS, "10000"))

	s.step('caller_code_id', deploy_caller)
	s.step('caller1', lambda r: clients['caller'].instantiate_contract(a1))
	s.step('balance1', balance_of_caller('balance1'), banner="Transfer token to callerContract")
	s.step('transfer_to_caller',
		lambda r: clients['token'].transfer(r['token1'], a0, r['caller1'], "10000", 200000))
	s.step('balance2', balance_of_caller('balance2'))
	s.step('caller_transfer',
		lambda r: clients['caller'].transfer(r['caller1'], a1, r['token1'], a2, "5000"),
		banner="Transfer token from callerContract to alice address2")
	s.step('caller2', lambda r: clients['caller'].instantiate_contract(a2))
	s.step('caller_approve',
		lambda r: clients['caller'].approve(r['caller1'], a1, r['token1'], r['caller2'], "5000", "0"),
		banner="Approve token of caller")
	s.step('caller_transfer_from',
		lambda r: clients['caller'].transfer_from(r['caller2'], a2, r['token1'], r['caller1'], a3, "2000"),
		banner="TransferFrom by caller")
	return s
