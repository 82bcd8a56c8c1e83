from decimal import Decimal

from django.test import SimpleTestCase

from listing_client.refiner import effective_price, refine


def listing(id, location="Pune", type="rent", createdAt="2024-01-01T00:00:00Z", **prices):
    return dict(id=id, location=location, type=type, createdAt=createdAt, **prices)


class EffectivePriceTests(SimpleTestCase):

    def test_sale_uses_positive_discount(self):
        self.assertEqual(
            effective_price(listing(1, type="sale", sellingPrice=900000, discountedPrice=850000)),
            Decimal("850000"),
        )

    def test_sale_without_discount_uses_selling_price(self):
        self.assertEqual(
            effective_price(listing(1, type="sale", sellingPrice="900000.00", discountedPrice=0)),
            Decimal("900000.00"),
        )

    def test_rent_uses_rental_price(self):
        self.assertEqual(effective_price(listing(1, rentalPrice=25000)), Decimal("25000"))

    def test_missing_price(self):
        self.assertIsNone(effective_price(listing(1)))


class RefineTests(SimpleTestCase):

    def setUp(self):
        self.listings = [
            listing(1, location="Andheri, Mumbai", rentalPrice=40000, createdAt="2024-03-01T10:00:00Z"),
            listing(2, location="Koregaon Park, Pune", type="sale", sellingPrice=9000000,
                    discountedPrice=8000000, createdAt="2024-01-15T10:00:00Z"),
            listing(3, location="MUMBAI Central", type="sale", sellingPrice=7500000,
                    createdAt="2024-02-10T10:00:00Z"),
            listing(4, location="Navi Mumbai", rentalPrice=40000, createdAt="2024-02-20T10:00:00Z"),
        ]

    def ids(self, listings):
        return [item["id"] for item in listings]

    def test_location_filter_is_case_insensitive(self):
        refined = refine(self.listings, location="mumbai")

        self.assertEqual(set(self.ids(refined)), {1, 3, 4})
        self.assertTrue(all("mumbai" in item["location"].lower() for item in refined))

    def test_price_ascending_uses_effective_price(self):
        refined = refine(self.listings, sort_by="price-asc")

        prices = [effective_price(item) for item in refined]
        self.assertEqual(prices, sorted(prices))
        self.assertEqual(self.ids(refined), [1, 4, 3, 2])

    def test_price_descending(self):
        refined = refine(self.listings, sort_by="price-desc")

        prices = [effective_price(item) for item in refined]
        self.assertEqual(prices, sorted(prices, reverse=True))
        # equal prices keep their input order
        self.assertEqual(self.ids(refined), [2, 3, 1, 4])

    def test_date_sorts(self):
        self.assertEqual(self.ids(refine(self.listings, sort_by="date-desc")), [1, 4, 3, 2])
        self.assertEqual(self.ids(refine(self.listings, sort_by="date-asc")), [2, 3, 4, 1])

    def test_unknown_sort_keeps_order(self):
        self.assertEqual(self.ids(refine(self.listings, sort_by="")), [1, 2, 3, 4])

    def test_input_is_not_mutated(self):
        original = list(self.listings)
        refine(self.listings, location="pune", sort_by="price-asc")
        self.assertEqual(self.listings, original)
