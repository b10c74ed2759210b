from unittest.mock import MagicMock

import pytest

from finschia import ExecuteResult, InstantiateResult, UploadResult, BroadcastTxError
from token_clients import TokenClient, CallerClient, deploy_contract


def execute_result(txhash='TX1'):
	return ExecuteResult(txhash, 10, 150000, 90000, [{'type': 'wasm', 'attributes': []}])

@pytest.fixture
def client():
	c = MagicMock()
	c.execute.return_value = execute_result()
	return c

def fee_of(call):
	return call[0][3]


def test_deploy_contract(client, capsys):
	client.upload.return_value = UploadResult('ab', 4, 24, 3, 'TXU', 5, 1500000, 1000000, [])
	assert deploy_contract(client, 'link1a', b'\x00asm') == 3
	sender, wasm, fee, memo = client.upload.call_args[0]
	assert (sender, wasm, memo) == ('link1a', b'\x00asm', "Upload standard contract")
	assert fee == {'amount': [{'denom': 'cony', 'amount': '37500'}], 'gas': '1500000'}
	assert 'Upload succeeded. Receipt: {"checksum":"ab"' in capsys.readouterr().out

def test_instantiate(client, capsys):
	client.instantiate.return_value = InstantiateResult('link1contract', 'TXI', 5, 0, 0, [])
	init = {'label': 'L', 'msg': {'name': 'A To Z Token'}, 'admin': 'link1admin'}
	assert TokenClient(client, 3).instantiate_contract('link1a', init) == 'link1contract'
	args, kwargs = client.instantiate.call_args
	assert args[:4] == ('link1a', 3, {'name': 'A To Z Token'}, 'L')
	assert args[4]['gas'] == '500000'
	assert kwargs == {'memo': "Create a Test Token", 'admin': 'link1admin'}
	assert "Contract instantiated at link1contract in TXI" in capsys.readouterr().out

def test_transfer(client, capsys):
	assert TokenClient(client, 1).transfer('link1c', 'link1a', 'link1b', "1000") == 'TX1'
	call = client.execute.call_args
	assert call[0][:3] == ('link1a', 'link1c', {'transfer': {'recipient': 'link1b', 'amount': "1000"}})
	assert fee_of(call)['gas'] == '150000'
	assert capsys.readouterr().out.startswith('Transfer txHash: TX1, events: [{"type":"wasm"')

def test_transfer_gas_override(client):
	TokenClient(client, 1).transfer('link1c', 'link1a', 'link1b', "1000", 200000)
	assert fee_of(client.execute.call_args) == {'amount': [{'denom': 'cony', 'amount': '5000'}], 'gas': '200000'}

def test_transfer_returns_error(client):
	error = BroadcastTxError(5, 'insufficient funds', 11, 'TXF')
	client.execute.side_effect = error
	assert TokenClient(client, 1).transfer('link1c', 'link1a', 'link1b', "1000") is error

def test_approve_and_transfer_from(client):
	token = TokenClient(client, 1)
	token.approve('link1c', 'link1a', 'link1s', "1000000", "0")
	assert client.execute.call_args[0][2] == {'approve': {'spender': 'link1s', 'amount': "1000000", 'current_allowance': "0"}}
	token.transfer_from('link1c', 'link1s', 'link1a', 'link1r', "100000")
	assert client.execute.call_args[0][:3] == ('link1s', 'link1c',
		{'transfer_from': {'owner': 'link1a', 'recipient': 'link1r', 'amount': "100000"}})

def test_approve_propagates_errors(client):
	client.execute.side_effect = BroadcastTxError(5, 'unauthorized', 11, 'TXF')
	with pytest.raises(BroadcastTxError):
		TokenClient(client, 1).approve('link1c', 'link1a', 'link1s', "1", "0")

def test_queries(client):
	token = TokenClient(client, 1)
	client.query_contract_smart.return_value = {'balance': '10000'}
	assert token.balance('link1c', 'link1o') == '10000'
	client.query_contract_smart.assert_called_with('link1c', {'balance': {'owner': 'link1o'}})
	client.query_contract_smart.return_value = {'allowance': '5'}
	assert token.allowance('link1c', 'link1o', 'link1s') == '5'
	client.query_contract_smart.assert_called_with('link1c', {'allowance': {'owner': 'link1o', 'spender': 'link1s'}})
	client.query_contract_smart.return_value = {'name': 'A To Z Token', 'symbol': 'ATZ', 'decimal': 6, 'total_supply': '1000000000'}
	assert token.total_supply('link1c') == '1000000000'
	assert token.info('link1c')['symbol'] == 'ATZ'

def test_caller_messages(client):
	caller = CallerClient(client, 2)
	caller.transfer('link1caller', 'link1a', 'link1token', 'link1r', "5000")
	assert client.execute.call_args[0][2] == {'transfer': {'contract': 'link1token', 'recipient': 'link1r', 'amount': "5000"}}
	assert fee_of(client.execute.call_args)['gas'] == '200000'
	caller.approve('link1caller', 'link1a', 'link1token', 'link1s', "5000", "0")
	assert client.execute.call_args[0][2] == {'approve': {
		'contract': 'link1token', 'spender': 'link1s', 'amount': "5000", 'current_allowance': "0"}}
	caller.transfer_from('link1caller2', 'link1b', 'link1token', 'link1caller', 'link1r', "2000")
	assert client.execute.call_args[0][:3] == ('link1b', 'link1caller2', {'transfer_from': {
		'contract': 'link1token', 'owner': 'link1caller', 'recipient': 'link1r', 'amount': "2000"}})

def test_caller_transfer_propagates_errors(client):
	client.execute.side_effect = BroadcastTxError(5, 'no allowance', 11, 'TXF')
	with pytest.raises(BroadcastTxError):
		CallerClient(client, 2).transfer('link1caller', 'link1a', 'link1token', 'link1r', "5000")

def test_caller_instantiate(client):
	client.instantiate.return_value = InstantiateResult('link1caller', 'TXI', 5, 0, 0, [])
	assert CallerClient(client, 2).instantiate_contract('link1a') == 'link1caller'
	args, kwargs = client.instantiate.call_args
	assert args[:4] == ('link1a', 2, {}, "caller instantiate")
	assert kwargs['admin'] == 'link1a'
