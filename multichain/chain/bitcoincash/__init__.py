"""Bitcoin Cash CashAddr and legacy addresses, transactions and fee estimation."""