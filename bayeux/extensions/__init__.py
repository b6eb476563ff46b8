"""The replay-id extension and a Salesforce token-authenticating transport for Bayeux clients."""