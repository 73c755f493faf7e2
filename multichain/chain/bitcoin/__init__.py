"""Bitcoin addresses, wire format, scripts, transactions and fee estimation."""