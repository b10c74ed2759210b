import pytest

from finschia import GasPrice, calculate_fee


def test_gas_price_from_string():
	price = GasPrice.from_string("0.025cony")
	assert price.denom == "cony"
	assert str(price) == "0.025cony"

@pytest.mark.parametrize("bad", ["cony", "0.025", "0.025c", "0.025Cony", "1,5cony", "1.2.3cony", ".cony", "..cony", "1.cony"])
def test_gas_price_rejects_malformed(bad):
	with pytest.raises(ValueError):
		GasPrice.from_string(bad)

def test_fee_for_scenario_gas_limits():
	price = GasPrice.from_string("0.025cony")
	assert calculate_fee(1500000, price) == {'amount': [{'denom': 'cony', 'amount': '37500'}], 'gas': '1500000'}
	assert calculate_fee(500000, price)['amount'][0]['amount'] == '12500'
	assert calculate_fee(150000, price)['amount'][0]['amount'] == '3750'
	assert calculate_fee(200000, price)['amount'][0]['amount'] == '5000'

def test_fee_rounds_up():
	assert calculate_fee(1, "0.025cony")['amount'][0]['amount'] == '1'
	assert calculate_fee(41, "0.025cony")['amount'][0]['amount'] == '2'
