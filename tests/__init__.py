TEST_API_KEY = "test-api-key"
